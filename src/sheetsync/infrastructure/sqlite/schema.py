"""
SQLite schema for the event store.

Two tables:
- events: one row per event, statistics kept as a JSON object
- sync_sources: source configuration plus its aggregate sync state
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# Schema version - increment when making breaking changes
SCHEMA_VERSION = 1

EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id TEXT NOT NULL,
    identity_token TEXT UNIQUE,
    name TEXT NOT NULL,
    event_date TEXT,
    kind TEXT NOT NULL DEFAULT 'standalone',
    descriptor1 TEXT,
    descriptor2 TEXT,
    title TEXT,
    attributes TEXT NOT NULL DEFAULT '{}',
    notes TEXT,
    source_modified_at TEXT,
    synced_at TEXT,
    source_of TEXT NOT NULL DEFAULT 'source',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

SYNC_SOURCES_TABLE = """
CREATE TABLE IF NOT EXISTS sync_sources (
    id TEXT PRIMARY KEY,
    name TEXT,
    workbook_path TEXT,
    sheet_name TEXT NOT NULL DEFAULT 'Events',
    header_row INTEGER NOT NULL DEFAULT 1,
    data_start_row INTEGER NOT NULL DEFAULT 2,
    token_column TEXT NOT NULL DEFAULT 'A',
    enabled INTEGER NOT NULL DEFAULT 1,
    sync_mode TEXT NOT NULL DEFAULT 'manual',

    last_sync_at TEXT,
    last_sync_status TEXT,
    last_sync_error TEXT,
    last_pull_at TEXT,
    last_push_at TEXT,
    pull_count INTEGER NOT NULL DEFAULT 0,
    push_count INTEGER NOT NULL DEFAULT 0,
    last_created INTEGER NOT NULL DEFAULT 0,
    last_updated INTEGER NOT NULL DEFAULT 0,
    total_events INTEGER NOT NULL DEFAULT 0,

    sync_in_progress INTEGER NOT NULL DEFAULT 0,
    lock_acquired_at TEXT,
    created_at TEXT NOT NULL
)
"""

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_events_source ON events(source_id)",
    "CREATE INDEX IF NOT EXISTS idx_events_date ON events(event_date)",
)

SCHEMA_META_TABLE = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT
)
"""


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Create tables if they don't exist.

    Safe to call multiple times - uses CREATE TABLE IF NOT EXISTS.
    """
    conn.execute(EVENTS_TABLE)
    conn.execute(SYNC_SOURCES_TABLE)
    for statement in INDEXES:
        conn.execute(statement)
    conn.execute(SCHEMA_META_TABLE)
    conn.execute(
        "INSERT OR REPLACE INTO schema_meta (key, value) VALUES ('version', ?)",
        (str(SCHEMA_VERSION),),
    )
    conn.commit()
    logger.info("Database schema initialized (version %d)", SCHEMA_VERSION)
