from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from config import get_config_value, load_config

logger = logging.getLogger(__name__)

FIRST_PAGE = 1
LAST_PAGE = 604

RECITERS: Dict[str, str] = {
    "husary": "ar.husary",
    "alafasy": "ar.alafasy",
    "abdulsamad": "ar.abdulsamad",
}
RECITER_NAMES: Dict[str, str] = {
    "husary": "Sheikh Mahmoud Khalil Al-Husary",
    "alafasy": "Sheikh Mishary Rashid Alafasy",
    "abdulsamad": "Sheikh Abdul Basit Abdul Samad",
}
DEFAULT_RECITER = "husary"


class ContentUnavailableError(Exception):
    """The content API could not resolve the requested page or ayah."""


def is_valid_page(page: Any) -> bool:
    return isinstance(page, int) and not isinstance(page, bool) and FIRST_PAGE <= page <= LAST_PAGE


def _content_config(config: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if config is None:
        config = load_config()
    return config.get("content", {})


def _query_page_from_db(conn, page: int) -> Optional[List[Dict[str, Any]]]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT number, surah, ayah, page, text
        FROM ayah_texts
        WHERE page = ?
        ORDER BY surah, ayah
        """,
        (page,),
    )
    rows = cursor.fetchall()
    if not rows:
        return None
    return [dict(row) for row in rows]


def _cache_page(conn, ayahs: List[Dict[str, Any]]) -> None:
    cursor = conn.cursor()
    cursor.executemany(
        """
        INSERT OR IGNORE INTO ayah_texts (number, surah, ayah, page, text)
        VALUES (?, ?, ?, ?, ?)
        """,
        [
            (entry["number"], entry["surah"], entry["ayah"], entry["page"], entry["text"])
            for entry in ayahs
        ],
    )
    conn.commit()


def _get_json(url: str, client: Optional[httpx.Client], timeout: float) -> Dict[str, Any]:
    try:
        if client is not None:
            response = client.get(url)
        else:
            with httpx.Client(timeout=timeout) as owned_client:
                response = owned_client.get(url)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise ContentUnavailableError(f"Request to {url} failed: {exc}") from exc


def _query_page_from_api(
    page: int,
    content_cfg: Mapping[str, Any],
    client: Optional[httpx.Client],
) -> List[Dict[str, Any]]:
    url = f"{content_cfg['api_url']}/page/{page}/{content_cfg['edition']}"
    payload = _get_json(url, client, content_cfg["timeout"])
    try:
        raw_ayahs = payload["data"]["ayahs"]
        return [
            {
                "number": int(entry["number"]),
                "surah": int(entry["surah"]["number"]),
                "ayah": int(entry["numberInSurah"]),
                "page": page,
                "text": entry["text"],
            }
            for entry in raw_ayahs
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ContentUnavailableError(f"Malformed response for page {page}") from exc


def fetch_page_ayahs(
    conn,
    page: int,
    start_ayah: Optional[int] = None,
    end_ayah: Optional[int] = None,
    *,
    config: Optional[Mapping[str, Any]] = None,
    client: Optional[httpx.Client] = None,
) -> List[Dict[str, Any]]:
    """Return the ayahs of a mushaf page, optionally bounded by numberInSurah.

    The shared ayah_texts cache is checked first; on a miss the whole page is
    fetched from the API and cached before the range filter is applied.
    """
    content_cfg = _content_config(config)
    ayahs = _query_page_from_db(conn, page)
    if ayahs is None:
        ayahs = _query_page_from_api(page, content_cfg, client)
        if ayahs:
            _cache_page(conn, ayahs)
            logger.info("Cached %d ayahs for page %d", len(ayahs), page)
    if start_ayah is not None and end_ayah is not None:
        ayahs = [entry for entry in ayahs if start_ayah <= entry["ayah"] <= end_ayah]
    return ayahs


def get_content_client():
    """FastAPI dependency: one httpx client per request for the content API."""
    timeout = float(get_config_value("content", "timeout", 10.0))
    with httpx.Client(timeout=timeout) as client:
        yield client


def normalize_reciter(reciter: Optional[str]) -> str:
    key = (reciter or "").strip().lower()
    return key if key in RECITERS else DEFAULT_RECITER


def get_audio_url(
    surah: int,
    ayah: int,
    reciter: Optional[str] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> str:
    """API endpoint that describes the recitation of one ayah."""
    content_cfg = _content_config(config)
    reciter_code = RECITERS[normalize_reciter(reciter or content_cfg.get("default_reciter"))]
    return f"{content_cfg['api_url']}/ayah/{surah}:{ayah}/{reciter_code}"


def resolve_audio(
    surah: int,
    ayah: int,
    reciter: Optional[str] = None,
    *,
    config: Optional[Mapping[str, Any]] = None,
    client: Optional[httpx.Client] = None,
) -> str:
    """Direct mp3 link for one ayah by the given reciter."""
    content_cfg = _content_config(config)
    url = get_audio_url(surah, ayah, reciter, config={"content": content_cfg})
    payload = _get_json(url, client, content_cfg["timeout"])
    try:
        return payload["data"]["audio"]
    except (KeyError, TypeError) as exc:
        raise ContentUnavailableError(f"No audio for {surah}:{ayah}") from exc
