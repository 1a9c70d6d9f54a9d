# studyforge/config/schema.py
"""
Pydantic configuration models for studyforge.

All models use extra="ignore" to allow unknown YAML keys without crashing.
Every numeric policy constant used by the capture queue and the generation
orchestrator lives here rather than in the modules that use it.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ServiceConfig(BaseModel):
    """Inference service endpoint and credentials."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    provider: Literal["ollama", "openai", "azure"] = Field(
        default="ollama", description="Inference provider"
    )
    base_url: str = Field(
        default="http://localhost:11434",
        description="Service base URL (Azure: resource endpoint)",
    )
    api_key: str | None = Field(
        default=None, description="API key (not used by Ollama)"
    )
    model: str = Field(
        default="llama3.2-vision",
        description="Model name (Azure: deployment name)",
    )
    api_version: str = Field(
        default="2024-10-21", description="Azure OpenAI API version"
    )
    timeout: int = Field(
        default=120, ge=1, description="Request timeout in seconds"
    )

    def cache_key(self) -> tuple:
        """Identity used to share one client between requests with the same target."""
        return (self.provider, self.base_url, self.api_key, self.model, self.api_version)


class CaptureConfig(BaseModel):
    """Page capture queue settings."""

    model_config = ConfigDict(extra="ignore")

    max_concurrent: int = Field(
        default=2, ge=1, le=16, description="Maximum images analyzed at once"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Automatic retries per image before giving up"
    )
    backoff_base: float = Field(
        default=2.0,
        ge=0.0,
        description="Backoff before retry n is backoff_base ** n seconds",
    )


class ExtractionConfig(BaseModel):
    """Image analysis settings."""

    model_config = ConfigDict(extra="ignore")

    min_text_length: int = Field(
        default=20,
        ge=0,
        description="Extracted text shorter than this is flagged as low quality",
    )
    max_tokens: int = Field(
        default=16384, ge=256, description="Response token limit for page analysis"
    )


class GenerationConfig(BaseModel):
    """Study item generation settings."""

    model_config = ConfigDict(extra="ignore")

    max_tokens_per_chunk: int = Field(
        default=4000, ge=100, description="Token budget per content chunk"
    )
    tokens_per_char: float = Field(
        default=0.25, gt=0.0, le=4.0, description="Token estimate per character of page text"
    )
    similarity_threshold: float = Field(
        default=0.92,
        ge=0.0,
        le=1.0,
        description="Items more similar than this to an accepted item are dropped",
    )
    temperature: float = Field(
        default=0.5, ge=0.0, le=2.0, description="Sampling temperature for item generation"
    )
    estimate_min: int = Field(default=5, ge=1, description="Lower bound for count estimates")
    estimate_max: int = Field(default=50, ge=1, description="Upper bound for count estimates")
    estimate_items_per_page: int = Field(
        default=4, ge=1, description="Heuristic items per page when the service is not asked"
    )
    estimate_sample_pages: int = Field(
        default=2, ge=1, description="Pages sampled for the estimation request"
    )
    min_sample_chars: int = Field(
        default=50, ge=0, description="Minimum sample text before asking the service to estimate"
    )
    estimate_timeout: float = Field(
        default=6.0, ge=5.0, le=10.0, description="Estimation request timeout in seconds"
    )
    health_check: bool = Field(
        default=True, description="Check service reachability before a generation run"
    )
    retry_attempts: int = Field(
        default=3, ge=1, le=10, description="Attempts per generation call on transient errors"
    )
    retry_wait_min: float = Field(
        default=4.0, ge=0.0, description="Minimum wait between generation retries in seconds"
    )


class StorageConfig(BaseModel):
    """Item store settings."""

    model_config = ConfigDict(extra="ignore")

    db_path: str | None = Field(
        default=None,
        description="SQLite database path (None = items.db in the config directory)",
    )


class OutputConfig(BaseModel):
    """Logging output configuration."""

    model_config = ConfigDict(extra="ignore")

    verbosity: Literal["quiet", "normal", "verbose"] = Field(
        default="normal", description="Logging verbosity level"
    )
    json_logs: bool = Field(default=False, description="Emit JSON log lines")


class StudyForgeConfig(BaseModel):
    """Root configuration for studyforge."""

    model_config = ConfigDict(extra="ignore")

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
