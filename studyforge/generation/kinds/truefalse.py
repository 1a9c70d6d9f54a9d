# studyforge/generation/kinds/truefalse.py
"""True/false items: sets of statements to judge."""

from studyforge.generation.kinds.base import ItemKind
from studyforge.models.items import StudyItem, TrueFalseItem


class TrueFalseKind(ItemKind):
    @property
    def tag(self) -> str:
        return "truefalse"

    @property
    def item_model(self) -> type[StudyItem]:
        return TrueFalseItem

    @property
    def label(self) -> str:
        return "true/false exercises"
