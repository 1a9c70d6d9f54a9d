# tests/unit/test_sqlite_store.py
"""
Unit tests for SQLiteItemStore and InMemoryItemStore.

Tests CRUD operations, filtering, newest-first ordering, and serialization
of every item kind.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from studyforge.models.items import ClozeItem, Flashcard, TrueFalseItem
from studyforge.models.sqlite_store import SQLiteItemStore
from studyforge.models.store import InMemoryItemStore

_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(params=["sqlite", "memory"])
async def store(request, tmp_path: Path):
    """Both store implementations, initialized."""
    if request.param == "memory":
        yield InMemoryItemStore()
        return
    store = SQLiteItemStore(str(tmp_path / "test_items.db"))
    await store.initialize()
    yield store
    await store.close()


def _card(item_id: str, minutes: int = 0, question: str = "What is ATP?") -> Flashcard:
    return Flashcard(
        id=item_id,
        question=question,
        answer="Adenosine triphosphate",
        source_pages=["p1"],
        concepts=["energy"],
        created_at=_NOW + timedelta(minutes=minutes),
    )


@pytest.mark.asyncio
async def test_save_and_get_roundtrip(store):
    card = _card("c1")
    await store.save(card)

    retrieved = await store.get("c1")

    assert isinstance(retrieved, Flashcard)
    assert retrieved.question == card.question
    assert retrieved.source_pages == ["p1"]
    assert retrieved.concepts == ["energy"]
    assert retrieved.created_at == card.created_at


@pytest.mark.asyncio
async def test_every_kind_roundtrips(store):
    cloze = ClozeItem(id="z1", sentence="ATP stores ____.", blanks=["energy"], created_at=_NOW)
    tf = TrueFalseItem(
        id="t1",
        statements=[{"statement": "ATP is a protein.", "isTrue": False, "explanation": "Nucleotide"}],
        created_at=_NOW,
    )
    await store.save(cloze)
    await store.save(tf)

    got_cloze = await store.get("z1")
    got_tf = await store.get("t1")

    assert isinstance(got_cloze, ClozeItem)
    assert got_cloze.blanks == ["energy"]
    assert isinstance(got_tf, TrueFalseItem)
    assert got_tf.statements[0].is_true is False
    assert got_tf.statements[0].explanation == "Nucleotide"


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get("nope") is None


@pytest.mark.asyncio
async def test_save_replaces_existing(store):
    await store.save(_card("c1"))
    await store.save(_card("c1", question="What is ADP?"))

    items = await store.list_all()

    assert len(items) == 1
    assert items[0].question == "What is ADP?"


@pytest.mark.asyncio
async def test_save_without_id_rejected(store):
    with pytest.raises(ValueError, match="without an id"):
        await store.save(Flashcard(question="Q", answer="A"))


@pytest.mark.asyncio
async def test_delete(store):
    await store.save(_card("c1"))

    assert await store.delete("c1") is True
    assert await store.delete("c1") is False
    assert await store.get("c1") is None


@pytest.mark.asyncio
async def test_list_newest_first_with_filters(store):
    await store.save(_card("old", minutes=0), series_key="bio")
    await store.save(_card("new", minutes=5), series_key="bio")
    await store.save(
        ClozeItem(id="z1", sentence="A ____", blanks=["b"], created_at=_NOW - timedelta(minutes=5)),
        series_key="chem",
    )

    assert [i.id for i in await store.list_all()] == ["new", "old", "z1"]
    assert [i.id for i in await store.list_all(series_key="bio")] == ["new", "old"]
    assert [i.id for i in await store.list_all(kind="cloze")] == ["z1"]
    assert await store.list_all(kind="flashcard", series_key="chem") == []
