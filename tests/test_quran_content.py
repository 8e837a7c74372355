import httpx
import pytest

from utils.quran import (
    ContentUnavailableError,
    fetch_page_ayahs,
    get_audio_url,
    is_valid_page,
    normalize_reciter,
    resolve_audio,
)


def test_is_valid_page_bounds():
    assert is_valid_page(1)
    assert is_valid_page(604)
    assert not is_valid_page(0)
    assert not is_valid_page(605)
    assert not is_valid_page("3")
    assert not is_valid_page(True)


def test_fetch_page_filters_by_number_in_surah(conn, fake_api, test_config):
    ayahs = fetch_page_ayahs(conn, 2, 17, 19, config=test_config, client=fake_api.client())
    assert [(entry["surah"], entry["ayah"]) for entry in ayahs] == [(2, 17), (2, 18), (2, 19)]
    assert ayahs[0] == {"number": 24, "surah": 2, "ayah": 17, "page": 2, "text": "ayah text 2:17"}


def test_fetch_page_reads_cache_before_network(conn, fake_api, test_config):
    fetch_page_ayahs(conn, 1, config=test_config, client=fake_api.client())
    fake_api.fail = True
    cached = fetch_page_ayahs(conn, 1, config=test_config, client=fake_api.client())
    assert len(cached) == 15
    assert len(fake_api.requests) == 1


def test_fetch_page_only_one_bound_returns_whole_page(conn, fake_api, test_config):
    ayahs = fetch_page_ayahs(conn, 1, 3, None, config=test_config, client=fake_api.client())
    assert len(ayahs) == 15


def test_fetch_page_upstream_error(conn, fake_api, test_config):
    fake_api.fail = True
    with pytest.raises(ContentUnavailableError):
        fetch_page_ayahs(conn, 1, config=test_config, client=fake_api.client())
    assert conn.execute("SELECT COUNT(*) FROM ayah_texts").fetchone()[0] == 0


def test_fetch_page_malformed_payload(conn, test_config):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": {}})))
    with pytest.raises(ContentUnavailableError):
        fetch_page_ayahs(conn, 1, config=test_config, client=client)


def test_reciters_and_audio_urls(test_config):
    assert normalize_reciter("Alafasy") == "alafasy"
    assert normalize_reciter("unknown") == "husary"
    assert normalize_reciter(None) == "husary"
    assert get_audio_url(2, 255, "alafasy", config=test_config) == "https://api.test/v1/ayah/2:255/ar.alafasy"
    assert get_audio_url(2, 255, config=test_config) == "https://api.test/v1/ayah/2:255/ar.husary"


def test_resolve_audio(fake_api, test_config):
    link = resolve_audio(1, 1, "abdulsamad", config=test_config, client=fake_api.client())
    assert link == "https://cdn.test/audio/ar.abdulsamad/1_1.mp3"
