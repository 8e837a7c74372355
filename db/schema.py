# SQL schema for HifzCoach database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Owners (one per chat)
CREATE TABLE IF NOT EXISTS owners (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id TEXT UNIQUE NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Memorized ayahs with their repetition state
CREATE TABLE IF NOT EXISTS review_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    number INTEGER,
    surah INTEGER NOT NULL,
    ayah INTEGER NOT NULL,
    page INTEGER NOT NULL CHECK(page BETWEEN 1 AND 604),
    stage TEXT NOT NULL DEFAULT 'sabak' CHECK(stage IN ('sabak', 'sabki', 'manzil')),
    step INTEGER NOT NULL DEFAULT 0 CHECK(step >= 0),
    next_due TEXT NOT NULL,
    FOREIGN KEY (owner_id) REFERENCES owners (id) ON DELETE CASCADE
);

-- Ayah text cache shared by all owners
CREATE TABLE IF NOT EXISTS ayah_texts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    number INTEGER,
    surah INTEGER NOT NULL,
    ayah INTEGER NOT NULL,
    page INTEGER NOT NULL,
    text TEXT NOT NULL,
    UNIQUE(surah, ayah)
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_review_items_owner_due ON review_items (owner_id, next_due);
CREATE INDEX IF NOT EXISTS idx_review_items_owner_page ON review_items (owner_id, page);
CREATE INDEX IF NOT EXISTS idx_review_items_unit ON review_items (owner_id, surah, ayah);
CREATE INDEX IF NOT EXISTS idx_ayah_texts_page ON ayah_texts (page);
"""
