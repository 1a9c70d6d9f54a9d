# studyforge/models/store.py
"""
Item store protocol and in-memory implementation.

Defines the abstract interface that both InMemoryItemStore and
SQLiteItemStore implement. Only finalized items (with an id) are stored.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from studyforge.models.items import StudyItem

logger = logging.getLogger(__name__)


class ItemStore(ABC):
    """Abstract base class for durable study item storage."""

    @abstractmethod
    async def save(self, item: "StudyItem", series_key: str | None = None) -> None:
        """
        Insert or replace an item.

        Args:
            item: Finalized item (must carry an id)
            series_key: Optional grouping key (e.g. the page series it came from)

        Raises:
            ValueError: If the item has no id
        """

    @abstractmethod
    async def get(self, item_id: str) -> "StudyItem | None":
        """Get an item by id, or None."""

    @abstractmethod
    async def delete(self, item_id: str) -> bool:
        """Delete an item. Returns True if it existed."""

    @abstractmethod
    async def list_all(
        self, kind: str | None = None, series_key: str | None = None
    ) -> "list[StudyItem]":
        """
        List stored items, newest first.

        Args:
            kind: Only items of this kind
            series_key: Only items saved under this key
        """

    async def close(self) -> None:
        """Release resources (no-op by default)."""


def _require_id(item: "StudyItem") -> str:
    if not item.id:
        raise ValueError("Cannot store an item without an id (finalize it first)")
    return item.id


class InMemoryItemStore(ItemStore):
    """
    Simple in-memory item storage.

    Safe for single-event-loop usage.
    """

    def __init__(self) -> None:
        self._items: dict[str, tuple["StudyItem", str | None]] = {}
        logger.info("Initialized InMemoryItemStore")

    async def save(self, item: "StudyItem", series_key: str | None = None) -> None:
        self._items[_require_id(item)] = (item, series_key)

    async def get(self, item_id: str) -> "StudyItem | None":
        entry = self._items.get(item_id)
        return entry[0] if entry else None

    async def delete(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    async def list_all(
        self, kind: str | None = None, series_key: str | None = None
    ) -> "list[StudyItem]":
        items = [
            item
            for item, key in self._items.values()
            if (kind is None or item.kind == kind)
            and (series_key is None or key == series_key)
        ]
        return sorted(
            items, key=lambda i: i.created_at.isoformat() if i.created_at else "", reverse=True
        )
