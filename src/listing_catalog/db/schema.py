"""Database schema definitions."""

import sqlite3
from pathlib import Path

from ..config import config


SCHEMA = """
-- one JSON document per listing, plus the columns catalog queries filter and sort on
CREATE TABLE IF NOT EXISTS listings (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    industries JSON NOT NULL DEFAULT '[]',
    view_count INTEGER NOT NULL DEFAULT 0,
    is_deleted INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    document JSON NOT NULL
);

-- each owner's listing set; linking is idempotent
CREATE TABLE IF NOT EXISTS user_listings (
    owner_id TEXT NOT NULL,
    listing_id TEXT NOT NULL,
    linked_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (owner_id, listing_id)
);

-- keyset pagination indexes, one per sortable column
CREATE INDEX IF NOT EXISTS idx_listings_created ON listings(is_deleted, created_at, id);
CREATE INDEX IF NOT EXISTS idx_listings_name ON listings(is_deleted, name, id);
CREATE INDEX IF NOT EXISTS idx_listings_views ON listings(is_deleted, view_count, id);
CREATE INDEX IF NOT EXISTS idx_listings_type_status ON listings(type, status);
CREATE INDEX IF NOT EXISTS idx_listings_owner ON listings(owner_id);
"""


def init_db(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Initialize the database with schema.

    Args:
        db_path: Optional path to database. Uses config default if not provided.
            ``":memory:"`` gives a throwaway in-process database.

    Returns:
        Connection to the initialized database.
    """
    if db_path is None:
        db_path = config.db_path
        config.ensure_dirs()

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    conn.commit()
    return conn
