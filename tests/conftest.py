import json

import httpx
import pytest

import config
from db import database

API_URL = "https://api.test/v1"

TEST_CONFIG = f"""
[schedule]
new = [1, 3, 7]
consolidating = [14, 30]
long_term = [90, 180]
daily_hour = 6
daily_minute = 0
enabled = false

[content]
api_url = "{API_URL}"
edition = "quran-uthmani"
timeout = 5
default_reciter = "husary"

[access]
allowed_chat_ids = []
admin_token = ""

[logging]
level = "INFO"
file = ""
"""


def page_payload(page: int, ayah_count: int, surah: int = 2, first_ayah: int = 1, first_number: int = 8) -> dict:
    """Minimal alquran.cloud /page response."""
    return {
        "code": 200,
        "status": "OK",
        "data": {
            "number": page,
            "ayahs": [
                {
                    "number": first_number + offset,
                    "text": f"ayah text {surah}:{first_ayah + offset}",
                    "numberInSurah": first_ayah + offset,
                    "page": page,
                    "surah": {"number": surah},
                }
                for offset in range(ayah_count)
            ],
        },
    }


class FakeQuranApi:
    def __init__(self):
        self.pages = {
            1: page_payload(1, 15, surah=2, first_ayah=1, first_number=8),
            2: page_payload(2, 10, surah=2, first_ayah=16, first_number=23),
        }
        self.requests = []
        self.fail = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.fail:
            return httpx.Response(503, json={"code": 503, "status": "Service Unavailable"})
        parts = request.url.path.strip("/").split("/")
        # /v1/page/{page}/{edition}
        if len(parts) == 4 and parts[1] == "page":
            payload = self.pages.get(int(parts[2]))
            if payload is None:
                return httpx.Response(404, json={"code": 404, "status": "Not Found"})
            return httpx.Response(200, content=json.dumps(payload))
        # /v1/ayah/{surah}:{ayah}/{edition}
        if len(parts) == 4 and parts[1] == "ayah":
            surah, ayah = parts[2].split(":")
            audio = f"https://cdn.test/audio/{parts[3]}/{surah}_{ayah}.mp3"
            return httpx.Response(200, json={"code": 200, "data": {"audio": audio}})
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handle))


@pytest.fixture
def fake_api():
    return FakeQuranApi()


@pytest.fixture
def hifz_home(tmp_path, monkeypatch):
    config_dir = tmp_path / ".hifzcoach"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    config_path.write_text(TEST_CONFIG, encoding="utf-8")

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "hifzcoach.db")
    monkeypatch.setattr(database, "BACKUP_DIR", config_dir / "backups")
    for name in ("USER_CHAT_ID", "HIFZ_API_URL", "HIFZ_CONTENT_TIMEOUT", "HIFZ_ADMIN_TOKEN", "HIFZ_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    database.init_db()
    return config_dir


@pytest.fixture
def test_config(hifz_home):
    return config.load_config()


@pytest.fixture
def conn(hifz_home):
    with database.get_conn() as connection:
        yield connection
