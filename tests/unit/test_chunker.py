# tests/unit/test_chunker.py
"""Tests for token-budgeted page chunking."""

from studyforge.generation.chunker import chunk_pages, render_page
from studyforge.models.pages import PageMeta, SourcePage


def _page(page_id: str, chars: int, number: str | None = None) -> SourcePage:
    return SourcePage(id=page_id, text="a" * chars, meta=PageMeta(page_number=number))


def test_empty_input_gives_no_chunks():
    assert chunk_pages([]) == []


def test_pages_packed_until_budget():
    # 100 tokens each at 0.25 tokens/char, budget 250
    pages = [_page(f"p{i}", 400, str(i)) for i in range(1, 6)]

    chunks = chunk_pages(pages, max_tokens=250, tokens_per_char=0.25)

    assert [c.page_ids for c in chunks] == [["p1", "p2"], ["p3", "p4"], ["p5"]]
    assert chunks[0].estimated_tokens == 200
    assert all(c.estimated_tokens <= 250 for c in chunks)


def test_oversized_page_forms_its_own_chunk():
    pages = [_page("small1", 40), _page("huge", 4000), _page("small2", 40)]

    chunks = chunk_pages(pages, max_tokens=100, tokens_per_char=0.25)

    assert [c.page_ids for c in chunks] == [["small1"], ["huge"], ["small2"]]
    assert chunks[1].estimated_tokens == 1000


def test_every_page_in_exactly_one_chunk_in_order():
    pages = [_page(f"p{i}", 37 * i) for i in range(1, 12)]

    chunks = chunk_pages(pages, max_tokens=60, tokens_per_char=0.25)

    flattened = [pid for c in chunks for pid in c.page_ids]
    assert flattened == [p.id for p in pages]


def test_chunk_content_has_page_headers():
    pages = [_page("p1", 10, "7"), _page("p2", 10)]

    chunk = chunk_pages(pages)[0]

    assert "--- PAGE 7 ---" in chunk.content
    assert "--- PAGE unknown ---" in chunk.content
    assert chunk.content == render_page(pages[0]) + render_page(pages[1])
    assert chunk.page_reference_lines() == "Page 7 (ID: p1)\nUnknown page (ID: p2)"
