# studyforge/generation/dedupe.py
"""Near-duplicate removal by normalized edit distance."""

import logging
from collections.abc import Sequence

from studyforge.models.items import StudyItem

logger = logging.getLogger(__name__)


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insertions, deletions, substitutions) between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1]: 1 - levenshtein / longer length, case-insensitive.

    Identical strings score 1.0; if exactly one is empty the score is 0.0.
    """
    a, b = a.lower(), b.lower()
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def is_duplicate(candidate: StudyItem, accepted: StudyItem, threshold: float) -> bool:
    if getattr(candidate, "kind", None) != getattr(accepted, "kind", None):
        return False
    ours = candidate.comparison_texts()
    theirs = accepted.comparison_texts()
    return any(similarity(ours[name], theirs[name]) > threshold for name in ours)


def dedupe(items: Sequence[StudyItem], threshold: float = 0.92) -> list[StudyItem]:
    """
    Drop items too similar to an earlier item of the same kind.

    Args:
        items: Items in generation order
        threshold: Items scoring above this on any comparison field are dropped

    Returns:
        Order-preserving subset; the first occurrence wins
    """
    kept: list[StudyItem] = []
    for item in items:
        if any(is_duplicate(item, other, threshold) for other in kept):
            continue
        kept.append(item)
    if len(kept) < len(items):
        logger.info(f"Dedupe removed {len(items) - len(kept)} of {len(items)} items")
    return kept
