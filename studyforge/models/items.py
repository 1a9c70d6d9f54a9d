# studyforge/models/items.py
"""
Study item models.

Every item kind shares source attribution, difficulty and concept tags.
Items come back from the service without `id` and `created_at`; both are
assigned when a generation run finalizes its results.
"""

from datetime import datetime
from typing import Annotated, ClassVar, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

Difficulty = Literal["easy", "medium", "hard"]


class StudyItem(BaseModel):
    """Fields common to every generated study item."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # Fields compared by the deduplicator, in priority order
    comparison_fields: ClassVar[tuple[str, ...]] = ()

    id: str | None = Field(default=None, description="Assigned at finalization")
    source_pages: list[str] = Field(
        default_factory=list,
        alias="sourcePages",
        description="IDs of the pages this item was drawn from",
    )
    page_references: str | None = Field(
        default=None,
        alias="pageReferences",
        description="Human-readable page references, e.g. 'Page 5, Page 10'",
    )
    difficulty: Difficulty = Field(default="medium", description="easy, medium or hard")
    concepts: list[str] = Field(
        default_factory=list, description="Key concepts covered by this item"
    )
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def _normalize_common(cls, data):
        """Handle service variations in shared fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        difficulty = data.get("difficulty")
        if isinstance(difficulty, str):
            difficulty = difficulty.strip().lower()
            data["difficulty"] = difficulty if difficulty in ("easy", "medium", "hard") else "medium"
        for key in ("sourcePages", "source_pages", "concepts"):
            if isinstance(data.get(key), str):
                data[key] = [data[key]]
        return data

    def comparison_texts(self) -> dict[str, str]:
        """Texts the deduplicator compares, keyed by field."""
        return {name: str(getattr(self, name) or "") for name in self.comparison_fields}


class Flashcard(StudyItem):
    """Question/answer card."""

    comparison_fields: ClassVar[tuple[str, ...]] = ("question", "answer")

    kind: Literal["flashcard"] = "flashcard"
    question: str = Field(description="The question text")
    answer: str = Field(description="The answer text, without page references")

    @model_validator(mode="before")
    @classmethod
    def _normalize_field_names(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "front" in data and "question" not in data:
            data["question"] = data.pop("front")
        if "back" in data and "answer" not in data:
            data["answer"] = data.pop("back")
        return data


class ClozeItem(StudyItem):
    """Sentence with blanked-out terms (each blank written as '____')."""

    comparison_fields: ClassVar[tuple[str, ...]] = ("sentence",)

    kind: Literal["cloze"] = "cloze"
    sentence: str = Field(description="Sentence with each removed term replaced by ____")
    blanks: list[str] = Field(description="Removed terms, in order of appearance")
    context: str | None = Field(default=None, description="Optional hint or surrounding context")


class TrueFalseStatement(BaseModel):
    """One statement in a true/false set."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    statement: str
    is_true: bool = Field(alias="isTrue")
    explanation: str | None = None


class TrueFalseItem(StudyItem):
    """A set of statements to judge true or false."""

    comparison_fields: ClassVar[tuple[str, ...]] = ("statement_text",)

    kind: Literal["truefalse"] = "truefalse"
    statements: list[TrueFalseStatement] = Field(
        min_length=1, description="Statements, each true or false"
    )

    @property
    def statement_text(self) -> str:
        return "\n".join(s.statement for s in self.statements)


GeneratedItem = Annotated[
    Union[Flashcard, ClozeItem, TrueFalseItem], Field(discriminator="kind")
]

ItemT = TypeVar("ItemT", bound=StudyItem)


class ItemBatch(BaseModel, Generic[ItemT]):
    """Envelope the service returns a batch of items in."""

    model_config = ConfigDict(extra="ignore")

    items: list[ItemT]
