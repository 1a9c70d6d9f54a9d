# studyforge/models/requests.py
"""Generation request and status models (cross the execution boundary as JSON)."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

GenerationState = Literal["idle", "estimating", "generating", "complete", "error"]


class Preferences(BaseModel):
    """Preferences shared by every kind in a request."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    difficulty: Literal["easy", "medium", "hard", "mixed"] = Field(
        default="mixed", description="Target difficulty for generated items"
    )
    style: str | None = Field(default=None, description="Free-form style guidance")
    include_humor: bool = Field(
        default=False, alias="includeHumor", description="Allow light humor in items"
    )


class KindTarget(BaseModel):
    """How many items of one kind to generate."""

    model_config = ConfigDict(extra="ignore")

    kind: str = Field(
        validation_alias=AliasChoices("kind", "type"), description="Item kind tag"
    )
    count: int = Field(ge=1, le=50, description="Number of items requested")

    @field_validator("kind", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class GenerationRequest(BaseModel):
    """
    A request to generate study items from a set of pages.

    Targets run in order; `max_total` caps the combined result.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    widgets: list[KindTarget] = Field(min_length=1, description="Per-kind targets")
    preferences: Preferences = Field(default_factory=Preferences)
    max_total: int = Field(
        default=50, ge=1, le=200, alias="maxTotal", description="Maximum total items"
    )

    @property
    def requested_total(self) -> int:
        return min(sum(t.count for t in self.widgets), self.max_total)

    @classmethod
    def single(cls, kind: str, count: int, **preferences) -> "GenerationRequest":
        """Shorthand for a one-kind request."""
        return cls(
            widgets=[KindTarget(kind=kind, count=count)],
            preferences=Preferences(**preferences),
        )


class GenerationStatus(BaseModel):
    """Progress snapshot of a generation or estimation run."""

    model_config = ConfigDict(extra="ignore")

    status: GenerationState = "idle"
    progress: int = 0
    total: int = 0
    message: str | None = None
    kind: str | None = None
    kind_counts: dict[str, int] | None = None
    error: str | None = None
    estimated_count: int | None = None
