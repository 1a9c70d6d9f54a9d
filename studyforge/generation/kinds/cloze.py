# studyforge/generation/kinds/cloze.py
"""Cloze items: sentences with key terms blanked out."""

from studyforge.generation.kinds.base import ItemKind
from studyforge.models.items import ClozeItem, StudyItem


class ClozeKind(ItemKind):
    @property
    def tag(self) -> str:
        return "cloze"

    @property
    def item_model(self) -> type[StudyItem]:
        return ClozeItem

    @property
    def label(self) -> str:
        return "cloze exercises"
