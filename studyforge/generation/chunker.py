# studyforge/generation/chunker.py
"""Greedy packing of page texts into token-budgeted chunks."""

import logging
from dataclasses import dataclass, field

from studyforge.models.pages import SourcePage

logger = logging.getLogger(__name__)


@dataclass
class ContentChunk:
    """A run of consecutive pages sent to the service in one generation request."""

    content: str = ""
    page_ids: list[str] = field(default_factory=list)
    page_numbers: list[str | None] = field(default_factory=list)
    estimated_tokens: float = 0.0

    def page_reference_lines(self) -> str:
        """One 'Page N (ID: x)' line per page, used to ask for source attribution."""
        lines = []
        for page_id, number in zip(self.page_ids, self.page_numbers):
            if number:
                lines.append(f"Page {number} (ID: {page_id})")
            else:
                lines.append(f"Unknown page (ID: {page_id})")
        return "\n".join(lines)


def render_page(page: SourcePage) -> str:
    """Render a page with its separator header."""
    return f"\n\n--- PAGE {page.meta.page_number or 'unknown'} ---\n\n{page.text}"


def chunk_pages(
    pages: list[SourcePage],
    max_tokens: int = 4000,
    tokens_per_char: float = 0.25,
) -> list[ContentChunk]:
    """
    Split pages into chunks that fit a token budget.

    Pages are accumulated in order; the running chunk is flushed before a page
    that would push it over the budget. A page larger than the budget on its
    own forms a single chunk.

    Args:
        pages: Pages in reading order
        max_tokens: Token budget per chunk
        tokens_per_char: Token estimate per character of page text

    Returns:
        Chunks in page order (empty list for no pages)
    """
    chunks: list[ContentChunk] = []
    current = ContentChunk()

    for page in pages:
        page_tokens = len(page.text) * tokens_per_char
        if current.page_ids and current.estimated_tokens + page_tokens > max_tokens:
            chunks.append(current)
            current = ContentChunk()

        current.content += render_page(page)
        current.page_ids.append(page.id)
        current.page_numbers.append(page.meta.page_number)
        current.estimated_tokens += page_tokens

    if current.page_ids:
        chunks.append(current)

    logger.debug(f"Chunked {len(pages)} pages into {len(chunks)} chunks (budget {max_tokens})")
    return chunks
