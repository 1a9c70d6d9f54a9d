# studyforge/models/pages.py
"""Page-level models: what image analysis returns and what generation consumes."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Figure(BaseModel):
    """A figure found on a page, described as alt-text."""

    model_config = ConfigDict(extra="ignore")

    number: str | None = Field(default=None, description="Figure number as printed")
    description: str = Field(description="Alt-text description of the figure")

    @field_validator("number", mode="before")
    @classmethod
    def _stringify_number(cls, value):
        if isinstance(value, (int, float)):
            return str(int(value))
        return value


class ExtractionResult(BaseModel):
    """
    Output contract for image analysis.

    The same model is the JSON schema sent to the service, the strict
    validation target, and the shape the regex fallback produces.
    """

    model_config = ConfigDict(extra="ignore")

    text: str = Field(description="Verbatim text of the page")
    page: str | None = Field(default=None, description="Printed page number, if visible")
    chapter_name: str | None = Field(default=None, description="Chapter name or number, if visible")
    title: str | None = Field(default=None, description="Book title, if visible")
    figures: list[Figure] = Field(
        default_factory=list, description="Alt-text descriptions of figures on the page"
    )
    error: bool = Field(
        default=False, description="True when the page has no usable text"
    )

    @field_validator("page", "chapter_name", "title", mode="before")
    @classmethod
    def _stringify_scalars(cls, value):
        if isinstance(value, (int, float)):
            return str(int(value))
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("figures", mode="before")
    @classmethod
    def _null_figures(cls, value):
        return value or []

    def to_capture_result(self, job_id: str) -> "CaptureResult":
        """Flatten into the shape delivered to capture completion callbacks."""
        return CaptureResult(
            job_id=job_id,
            text=self.text,
            image_descriptions=[f.description for f in self.figures if f.description],
            meta=PageMeta(
                page_number=self.page,
                chapter=self.chapter_name,
                book_title=self.title,
                low_quality=self.error,
            ),
        )


class PageMeta(BaseModel):
    """Bibliographic metadata for a captured page."""

    model_config = ConfigDict(extra="ignore")

    page_number: str | None = None
    chapter: str | None = None
    book_title: str | None = None
    low_quality: bool = False

    @field_validator("page_number", mode="before")
    @classmethod
    def _stringify_page(cls, value):
        if isinstance(value, (int, float)):
            return str(int(value))
        return value


class CaptureResult(BaseModel):
    """Result handed to a capture job's completion callback."""

    job_id: str
    text: str
    image_descriptions: list[str] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)


class SourcePage(BaseModel):
    """A page of extracted text that study items are generated from."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str = ""
    image_descriptions: list[str] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)

    @classmethod
    def from_capture(cls, result: CaptureResult) -> "SourcePage":
        return cls(
            id=result.job_id,
            text=result.text,
            image_descriptions=list(result.image_descriptions),
            meta=result.meta,
        )
