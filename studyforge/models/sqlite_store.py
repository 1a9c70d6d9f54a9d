# studyforge/models/sqlite_store.py
"""
SQLite-backed item persistence.

Items are stored as their JSON dump with kind, series key and creation time
broken out for filtering. No persistent connections are held.
"""

import logging
from datetime import datetime, timezone

import aiosqlite
from pydantic import TypeAdapter

from studyforge.models.items import GeneratedItem, StudyItem
from studyforge.models.schema import init_db
from studyforge.models.store import ItemStore, _require_id

logger = logging.getLogger(__name__)

_item_adapter: TypeAdapter = TypeAdapter(GeneratedItem)


class SQLiteItemStore(ItemStore):
    """
    Async SQLite-backed item storage.

    Features:
        - WAL mode for concurrent reads/writes
        - IMMEDIATE transactions for write safety
        - No persistent connections (avoids resource leaks)
    """

    def __init__(self, db_path: str) -> None:
        """
        Initialize SQLite item store.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        logger.info(f"Created SQLiteItemStore with path: {db_path}")

    async def initialize(self) -> None:
        """Create the schema if needed."""
        await init_db(self._db_path)

    async def save(self, item: StudyItem, series_key: str | None = None) -> None:
        item_id = _require_id(item)
        created_at = item.created_at or datetime.now(timezone.utc)

        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                await db.execute(
                    """
                    INSERT OR REPLACE INTO items (id, kind, series_key, payload, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        item_id,
                        item.kind,
                        series_key,
                        item.model_dump_json(),
                        created_at.isoformat(),
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.debug(f"Saved {item.kind} item {item_id}")

    async def get(self, item_id: str) -> StudyItem | None:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute("SELECT payload FROM items WHERE id = ?", (item_id,))
            row = await cursor.fetchone()

        if not row:
            return None
        return _item_adapter.validate_json(row[0])

    async def delete(self, item_id: str) -> bool:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            cursor = await db.execute("DELETE FROM items WHERE id = ?", (item_id,))
            deleted = cursor.rowcount
            await db.commit()

        if deleted:
            logger.info(f"Deleted item {item_id}")
        return deleted > 0

    async def list_all(
        self, kind: str | None = None, series_key: str | None = None
    ) -> list[StudyItem]:
        query = "SELECT payload FROM items"
        clauses = []
        params: list[str] = []
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind)
        if series_key is not None:
            clauses.append("series_key = ?")
            params.append(series_key)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC"

        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()

        return [_item_adapter.validate_json(row[0]) for row in rows]

    async def close(self) -> None:
        """Checkpoint the WAL so the database file is self-contained."""
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        logger.info("SQLiteItemStore closed")
