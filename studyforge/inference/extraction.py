# studyforge/inference/extraction.py
"""Regex fallback for image analysis responses that are not JSON at all."""

import logging
import re

from studyforge.models.pages import ExtractionResult, Figure

logger = logging.getLogger(__name__)

PAGE_PATTERNS = (
    re.compile(r"Page (\d+)", re.IGNORECASE),
    re.compile(r"p\. (\d+)", re.IGNORECASE),
)
CHAPTER_PATTERN = re.compile(r"Chapter (\d+|[IVX]+)", re.IGNORECASE)
TITLE_PATTERNS = (
    re.compile(r"Title: (.*?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"Book: (.*?)(?:\n|$)", re.IGNORECASE),
)
FIGURE_PATTERN = re.compile(
    r"Figure (\d+)[.:]?\s*(.*?)(?:\n\n|\n(?=Figure)|\n$)", re.IGNORECASE | re.DOTALL
)


def _first_match(patterns, content: str) -> str | None:
    for pattern in patterns:
        if match := pattern.search(content):
            return match.group(1)
    return None


def extract_from_text(content: str, min_text_length: int = 20) -> ExtractionResult:
    """
    Build an ExtractionResult from free-form analysis text.

    The whole response becomes the page text; page number, chapter, title
    and figures are picked out with regular expressions.

    Args:
        content: Raw response text
        min_text_length: Shorter text is flagged as low quality

    Returns:
        ExtractionResult (error=True when the text is empty or too short)
    """
    figures = [
        Figure(number=number, description=description.strip())
        for number, description in FIGURE_PATTERN.findall(content)
        if description.strip()
    ]
    result = ExtractionResult(
        text=content,
        page=_first_match(PAGE_PATTERNS, content),
        chapter_name=_first_match((CHAPTER_PATTERN,), content),
        title=_first_match(TITLE_PATTERNS, content),
        figures=figures,
        error=len(content.strip()) < min_text_length,
    )
    logger.info(
        f"Regex extraction: page={result.page}, chapter={result.chapter_name}, "
        f"figures={len(figures)}"
    )
    return result
