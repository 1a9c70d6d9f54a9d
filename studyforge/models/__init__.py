# studyforge/models/__init__.py
"""
Data models for studyforge.

Provides pydantic models for pages, study items, generation requests and
status, plus the item store interface.
"""

from studyforge.models.items import (
    ClozeItem,
    Difficulty,
    Flashcard,
    GeneratedItem,
    ItemBatch,
    StudyItem,
    TrueFalseItem,
    TrueFalseStatement,
)
from studyforge.models.pages import (
    CaptureResult,
    ExtractionResult,
    Figure,
    PageMeta,
    SourcePage,
)
from studyforge.models.requests import (
    GenerationRequest,
    GenerationState,
    GenerationStatus,
    KindTarget,
    Preferences,
)
from studyforge.models.store import InMemoryItemStore, ItemStore

__all__ = [
    # Pages
    "ExtractionResult",
    "Figure",
    "PageMeta",
    "CaptureResult",
    "SourcePage",
    # Items
    "StudyItem",
    "Flashcard",
    "ClozeItem",
    "TrueFalseItem",
    "TrueFalseStatement",
    "GeneratedItem",
    "ItemBatch",
    "Difficulty",
    # Requests
    "GenerationRequest",
    "GenerationStatus",
    "GenerationState",
    "KindTarget",
    "Preferences",
    # Storage
    "ItemStore",
    "InMemoryItemStore",
]
