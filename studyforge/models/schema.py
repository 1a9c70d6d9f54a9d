# studyforge/models/schema.py
"""
Database schema definition for SQLite item persistence.

Provides DDL for tables, indexes, and schema initialization.
"""

import logging

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

ITEMS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    series_key TEXT,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

ITEMS_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_items_series_created ON items(series_key, created_at)"
)


async def init_db(db_path: str) -> None:
    """
    Create tables and indexes, enable WAL mode, and record the schema version.

    Args:
        db_path: Path to SQLite database file
    """
    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute(ITEMS_TABLE_SQL)
        await db.execute(ITEMS_INDEX_SQL)
        await db.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER)")
        cursor = await db.execute("SELECT version FROM schema_version LIMIT 1")
        row = await cursor.fetchone()
        if row is None:
            await db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
        await db.commit()

    logger.info(f"Initialized item database at {db_path} (schema v{SCHEMA_VERSION})")
