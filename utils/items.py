from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set, Tuple

from models.owner import Owner
from models.review_item import ReviewItem, Stage
from utils.schedule import as_utc

# Fixed-width UTC timestamps so SQL string comparison matches time order
TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

_ITEM_COLUMNS = """
    ri.id, ri.owner_id, ri.number, ri.surah, ri.ayah, ri.page,
    ri.stage, ri.step, ri.next_due, txt.text AS text
"""


def format_ts(value: datetime) -> str:
    return as_utc(value).strftime(TS_FORMAT)


def parse_ts(value: str) -> datetime:
    return datetime.strptime(value, TS_FORMAT).replace(tzinfo=timezone.utc)


def _row_to_item(row: sqlite3.Row) -> ReviewItem:
    return ReviewItem(
        id=row["id"],
        owner_id=row["owner_id"],
        number=row["number"],
        surah=row["surah"],
        ayah=row["ayah"],
        page=row["page"],
        text=row["text"],
        stage=Stage(row["stage"]),
        step=row["step"],
        next_due=parse_ts(row["next_due"]),
    )


def _row_to_owner(row: sqlite3.Row) -> Owner:
    return Owner(id=row["id"], chat_id=row["chat_id"], created_at=row["created_at"])


class ItemStore:
    """SQLite-backed store for owners and their review items.

    Methods never commit; the caller owns the transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # Owners

    def get_owner(self, chat_id: str) -> Optional[Owner]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, chat_id, created_at FROM owners WHERE chat_id = ?",
            (str(chat_id),),
        )
        row = cursor.fetchone()
        return _row_to_owner(row) if row else None

    def get_or_create_owner(self, chat_id: str) -> Owner:
        cursor = self.conn.cursor()
        cursor.execute("INSERT OR IGNORE INTO owners (chat_id) VALUES (?)", (str(chat_id),))
        return self.get_owner(chat_id)

    def list_owners(self) -> List[Owner]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, chat_id, created_at FROM owners ORDER BY id")
        return [_row_to_owner(row) for row in cursor.fetchall()]

    # Review items

    def get_items_for_owner(self, owner_id: int) -> List[ReviewItem]:
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT {_ITEM_COLUMNS}
            FROM review_items ri
            LEFT JOIN ayah_texts txt ON txt.surah = ri.surah AND txt.ayah = ri.ayah
            WHERE ri.owner_id = ?
            ORDER BY ri.page, ri.surah, ri.ayah, ri.id
            """,
            (owner_id,),
        )
        return [_row_to_item(row) for row in cursor.fetchall()]

    def get_due_items(self, owner_id: int, as_of: datetime) -> List[ReviewItem]:
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT {_ITEM_COLUMNS}
            FROM review_items ri
            LEFT JOIN ayah_texts txt ON txt.surah = ri.surah AND txt.ayah = ri.ayah
            WHERE ri.owner_id = ? AND ri.next_due <= ?
            ORDER BY ri.page, ri.surah, ri.ayah, ri.id
            """,
            (owner_id, format_ts(as_of)),
        )
        return [_row_to_item(row) for row in cursor.fetchall()]

    def insert_items(self, owner_id: int, items: Iterable[ReviewItem]) -> int:
        """Insert items for an owner. Duplicate units are not rejected."""
        rows = [
            (
                owner_id,
                item.number,
                item.surah,
                item.ayah,
                item.page,
                Stage(item.stage).value,
                item.step,
                format_ts(item.next_due),
            )
            for item in items
        ]
        if not rows:
            return 0
        cursor = self.conn.cursor()
        cursor.executemany(
            """
            INSERT INTO review_items (owner_id, number, surah, ayah, page, stage, step, next_due)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        return len(rows)

    def update_item_schedule(self, item_id: int, stage: Stage, step: int, next_due: datetime) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE review_items SET stage = ?, step = ?, next_due = ? WHERE id = ?",
            (Stage(stage).value, step, format_ts(next_due), item_id),
        )

    def delete_items_by_page(self, owner_id: int, page: int) -> int:
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM review_items WHERE owner_id = ? AND page = ?",
            (owner_id, page),
        )
        return cursor.rowcount

    def existing_units(self, owner_id: int) -> Set[Tuple[int, int]]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT DISTINCT surah, ayah FROM review_items WHERE owner_id = ?",
            (owner_id,),
        )
        return {(row[0], row[1]) for row in cursor.fetchall()}

    def list_pages(self, owner_id: int) -> List[int]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT DISTINCT page FROM review_items WHERE owner_id = ? ORDER BY page",
            (owner_id,),
        )
        return [row[0] for row in cursor.fetchall()]
