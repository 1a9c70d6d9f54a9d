# studyforge/generation/kinds/__init__.py
"""
Item kind implementations.

Exports the registry of generatable kinds. Kinds known from older content
packs (matching, sequence, timeline, meme, joke, explain, riddle, oddoneout)
have no generator and are rejected with UnsupportedKindError.
"""

from studyforge.errors import UnsupportedKindError
from studyforge.generation.kinds.base import ItemKind
from studyforge.generation.kinds.cloze import ClozeKind
from studyforge.generation.kinds.flashcard import FlashcardKind
from studyforge.generation.kinds.truefalse import TrueFalseKind

KIND_REGISTRY: dict[str, ItemKind] = {
    kind.tag: kind for kind in (FlashcardKind(), ClozeKind(), TrueFalseKind())
}


def get_kind(tag: str) -> ItemKind:
    """
    Look up a registered kind.

    Raises:
        UnsupportedKindError: If no generator is registered for the tag
    """
    try:
        return KIND_REGISTRY[tag]
    except KeyError:
        supported = ", ".join(sorted(KIND_REGISTRY))
        raise UnsupportedKindError(
            f"No generator for item kind '{tag}' (supported: {supported})"
        ) from None


__all__ = [
    "ItemKind",
    "FlashcardKind",
    "ClozeKind",
    "TrueFalseKind",
    "KIND_REGISTRY",
    "get_kind",
]
