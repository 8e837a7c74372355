import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".hifzcoach"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_API_URL = "https://api.alquran.cloud/v1"


def _parse_chat_ids(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


def load_config() -> Dict[str, Any]:
    """Load config from ~/.hifzcoach/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., USER_CHAT_ID env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    schedule_cfg = config.get("schedule", {})
    config["schedule"] = {
        "new": list(schedule_cfg.get("new", [1, 3, 7])),
        "consolidating": list(schedule_cfg.get("consolidating", [14, 30])),
        "long_term": list(schedule_cfg.get("long_term", [90, 180])),
        "daily_hour": int(schedule_cfg.get("daily_hour", 6)),
        "daily_minute": int(schedule_cfg.get("daily_minute", 0)),
        "enabled": bool(schedule_cfg.get("enabled", True)),
    }
    content_cfg = config.get("content", {})
    config["content"] = {
        "api_url": os.getenv("HIFZ_API_URL", content_cfg.get("api_url", DEFAULT_API_URL)).rstrip("/"),
        "edition": content_cfg.get("edition", "quran-uthmani"),
        "timeout": float(os.getenv("HIFZ_CONTENT_TIMEOUT", content_cfg.get("timeout", 10))),
        "default_reciter": content_cfg.get("default_reciter", "husary"),
    }
    access_cfg = config.get("access", {})
    env_chat_ids = os.getenv("USER_CHAT_ID")
    config["access"] = {
        "allowed_chat_ids": _parse_chat_ids(
            env_chat_ids if env_chat_ids is not None else access_cfg.get("allowed_chat_ids", [])
        ),
        "admin_token": os.getenv("HIFZ_ADMIN_TOKEN", access_cfg.get("admin_token", "")),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("HIFZ_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
        "file": logging_cfg.get("file", "hifzcoach.log"),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('content', 'api_url')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
