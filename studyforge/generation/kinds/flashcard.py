# studyforge/generation/kinds/flashcard.py
"""Flashcards: question on the front, answer on the back."""

from studyforge.generation.kinds.base import ItemKind
from studyforge.models.items import Flashcard, StudyItem


class FlashcardKind(ItemKind):
    @property
    def tag(self) -> str:
        return "flashcard"

    @property
    def item_model(self) -> type[StudyItem]:
        return Flashcard

    @property
    def label(self) -> str:
        return "flashcards"
