from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from db.database import get_conn, snapshot_database
from models.review_item import PageProgress, ReviewItem, Stage
from utils.items import ItemStore
from utils.quran import ContentUnavailableError, fetch_page_ayahs, is_valid_page
from utils.schedule import ScheduleEngine, build_engine, utcnow

logger = logging.getLogger(__name__)


def validate_page(page: Any) -> int:
    if not is_valid_page(page):
        raise ValueError("Page must be a number from 1 to 604")
    return page


def validate_range(unit_range: Optional[Tuple[int, int]]) -> Optional[Tuple[int, int]]:
    if unit_range is None:
        return None
    start, end = unit_range
    if start < 1 or end < 1:
        raise ValueError("Ayah numbers must be positive")
    if start > end:
        raise ValueError("Start ayah cannot be greater than end ayah")
    return start, end


def add_page(
    conn,
    chat_id: str,
    page: int,
    unit_range: Optional[Tuple[int, int]] = None,
    *,
    engine: Optional[ScheduleEngine] = None,
    config: Optional[Mapping[str, Any]] = None,
    client: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> int:
    """Schedule the ayahs of a page (or an ayah range on it) for an owner.

    Units the owner already has are skipped, so repeating the call is safe.
    Returns the number of newly scheduled ayahs. Raises
    ContentUnavailableError when the content API cannot resolve the page;
    nothing is written in that case.
    """
    validate_page(page)
    unit_range = validate_range(unit_range)
    engine = engine or build_engine(config)
    start, end = unit_range if unit_range else (None, None)
    try:
        ayahs = fetch_page_ayahs(conn, page, start, end, config=config, client=client)
    except ContentUnavailableError as exc:
        logger.error("Could not load page %d: %s", page, exc)
        raise
    if not ayahs:
        logger.warning("Page %d has no ayahs in range %s", page, unit_range)
        return 0

    store = ItemStore(conn)
    owner = store.get_or_create_owner(chat_id)
    existing = store.existing_units(owner.id)
    now = now or utcnow()
    items = [
        engine.initialize(
            entry["surah"],
            entry["ayah"],
            page,
            number=entry["number"],
            text=entry["text"],
            now=now,
        )
        for entry in ayahs
        if (entry["surah"], entry["ayah"]) not in existing
    ]
    count = store.insert_items(owner.id, items)
    conn.commit()
    logger.info("Page %d added for chat %s (%d ayahs)", page, chat_id, count)
    return count


def due_items(conn, chat_id: str, as_of: Optional[datetime] = None) -> List[ReviewItem]:
    """Items due for review. Read-only."""
    store = ItemStore(conn)
    owner = store.get_owner(chat_id)
    if owner is None:
        return []
    return store.get_due_items(owner.id, as_of or utcnow())


def _advance_owner(store: ItemStore, owner_id: int, engine: ScheduleEngine, as_of: datetime) -> int:
    items = store.get_items_for_owner(owner_id)
    due_ids = {item.id for item in engine.select_due(items, as_of)}
    for item in engine.advance_all_due(items, as_of):
        if item.id in due_ids:
            store.update_item_schedule(item.id, item.stage, item.step, item.next_due)
    return len(due_ids)


def update_schedule(
    conn,
    chat_id: str,
    as_of: Optional[datetime] = None,
    *,
    engine: Optional[ScheduleEngine] = None,
) -> int:
    """Advance every due item of an owner. Returns how many moved."""
    store = ItemStore(conn)
    owner = store.get_owner(chat_id)
    if owner is None:
        return 0
    engine = engine or build_engine()
    count = _advance_owner(store, owner.id, engine, as_of or utcnow())
    conn.commit()
    logger.info("Schedule updated for chat %s (%d ayahs advanced)", chat_id, count)
    return count


def remove_page(conn, chat_id: str, page: int) -> int:
    validate_page(page)
    store = ItemStore(conn)
    owner = store.get_owner(chat_id)
    if owner is None:
        return 0
    if page not in store.list_pages(owner.id):
        return 0
    snapshot_database(conn, "remove")
    count = store.delete_items_by_page(owner.id, page)
    conn.commit()
    logger.info("Page %d removed for chat %s (%d ayahs)", page, chat_id, count)
    return count


def list_pages(conn, chat_id: str) -> List[int]:
    store = ItemStore(conn)
    owner = store.get_owner(chat_id)
    if owner is None:
        return []
    return store.list_pages(owner.id)


def page_progress(conn, chat_id: str) -> Dict[int, PageProgress]:
    """Per-page totals and stage counts, ordered by page."""
    store = ItemStore(conn)
    owner = store.get_owner(chat_id)
    if owner is None:
        return {}
    progress: Dict[int, PageProgress] = {}
    for item in store.get_items_for_owner(owner.id):
        entry = progress.setdefault(item.page, PageProgress(page=item.page))
        entry.total += 1
        stage = Stage(item.stage).value
        setattr(entry, stage, getattr(entry, stage) + 1)
    return dict(sorted(progress.items()))


def run_daily_update(
    as_of: Optional[datetime] = None,
    *,
    engine: Optional[ScheduleEngine] = None,
) -> Dict[str, Any]:
    """Advance due items for every owner.

    A snapshot is taken first. Each owner is then committed on its own; a
    failure (of the snapshot or of one owner) is logged and does not stop
    the remaining work.
    """
    as_of = as_of or utcnow()
    engine = engine or build_engine()
    logger.info("Daily schedule update started")
    summary: Dict[str, Any] = {"owners": 0, "advanced": 0, "failed": []}
    with get_conn() as conn:
        try:
            snapshot_database(conn, "daily")
        except Exception:
            logger.exception("Backup before the daily update failed; continuing without it")
        store = ItemStore(conn)
        for owner in store.list_owners():
            try:
                advanced = _advance_owner(store, owner.id, engine, as_of)
                conn.commit()
            except Exception:
                conn.rollback()
                logger.exception("Schedule update failed for chat %s", owner.chat_id)
                summary["failed"].append(owner.chat_id)
                continue
            summary["owners"] += 1
            summary["advanced"] += advanced
    logger.info(
        "Daily schedule update finished: %d owners, %d ayahs advanced, %d failures",
        summary["owners"],
        summary["advanced"],
        len(summary["failed"]),
    )
    return summary


def format_review_caption(item: ReviewItem) -> str:
    return f"📖 *{item.unit_ref}* (p. {item.page})\n{item.text or ''}".rstrip()
