import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".hifzcoach"
DB_PATH = CONFIG_DIR / "hifzcoach.db"
BACKUP_DIR = CONFIG_DIR / "backups"
BACKUP_KEEP = 5

def init_db():
    """Create tables and indexes on first run and stamp the schema version."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        conn.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)}")
        conn.commit()

def list_backups() -> List[Path]:
    """Database snapshots, newest first."""
    if not BACKUP_DIR.exists():
        return []
    return sorted(
        BACKUP_DIR.glob("hifzcoach-*.db"),
        key=lambda path: (path.stat().st_mtime_ns, path.name),
        reverse=True,
    )

def snapshot_database(conn: sqlite3.Connection, reason: str) -> Path:
    """Copy the database through SQLite's online backup API before a destructive change.

    Snapshots are named after the change that triggered them. Only the
    newest BACKUP_KEEP are kept.
    """
    BACKUP_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    destination = BACKUP_DIR / f"hifzcoach-{reason}-{timestamp}.db"
    target = sqlite3.connect(destination)
    try:
        conn.backup(target)
    finally:
        target.close()
    logger.info("Backup created before %s: %s", reason, destination.name)
    for stale in list_backups()[BACKUP_KEEP:]:
        stale.unlink(missing_ok=True)
        logger.info("Old backup removed: %s", stale.name)
    return destination

@contextmanager
def get_conn():
    """SQLite connection with dict-like rows and foreign keys enforced."""
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

def get_db():
    """FastAPI dependency: one connection per request."""
    with get_conn() as conn:
        yield conn
