"""
SQLite schema and database initialization.

Defines the schema for tracked series, their per-series exclusion words,
and the set of release hashes already filed into the library.
"""

import sqlite3
from pathlib import Path


SCHEMA_SQL = """
-- ============================================================
-- SERIES: One row per tracked show
-- ============================================================
CREATE TABLE IF NOT EXISTS series (
    id              INTEGER PRIMARY KEY,   -- canonical id from the feed site
    title           TEXT    NOT NULL,
    weekday         INTEGER NOT NULL DEFAULT 0 CHECK (weekday BETWEEN 0 AND 7),
    poster_url      TEXT    NOT NULL DEFAULT '',
    rss_url         TEXT    NOT NULL,
    enabled         INTEGER NOT NULL DEFAULT 1 CHECK (enabled IN (0, 1)),
    created_at      TEXT    DEFAULT (datetime('now')),
    updated_at      TEXT    DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_series_enabled ON series(enabled);

-- ============================================================
-- SERIES_EXCLUDE_WORDS: Ordered exclusion substrings per series
-- ============================================================
CREATE TABLE IF NOT EXISTS series_exclude_words (
    series_id       INTEGER NOT NULL REFERENCES series(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    word            TEXT    NOT NULL,
    PRIMARY KEY (series_id, position)
);

-- ============================================================
-- DOWNLOADED_HASHES: Releases fully placed into the library
-- ============================================================
CREATE TABLE IF NOT EXISTS downloaded_hashes (
    series_id       INTEGER NOT NULL REFERENCES series(id) ON DELETE CASCADE,
    hash            TEXT    NOT NULL,
    downloaded_at   TEXT    DEFAULT (datetime('now')),
    PRIMARY KEY (series_id, hash)
);
"""


def create_all_tables(db_path: Path) -> None:
    """
    Create database and all tables with indexes.

    This function is idempotent - safe to call multiple times.

    Args:
        db_path: Path to the SQLite database file to create/initialize
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA encoding = 'UTF-8'")
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()


def get_table_names(db_path: Path) -> list[str]:
    """Get list of all tables in the database."""
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()
