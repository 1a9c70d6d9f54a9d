# studyforge/inference/adapter.py
"""
Inference client adapter.

Wraps the raw LLM clients behind the four calls the rest of the system makes
(analyze a page image, generate items for a chunk, estimate an item count,
health check) and applies the structured output policy to each response.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from studyforge.config.schema import ExtractionConfig, ServiceConfig
from studyforge.errors import ResponseParseError
from studyforge.generation.chunker import ContentChunk
from studyforge.generation.kinds import get_kind
from studyforge.inference.extraction import extract_from_text
from studyforge.inference.parsing import ItemBatchPolicy, StructuredOutputPolicy
from studyforge.llm.factory import create_llm_client
from studyforge.llm.retry import inference_retry
from studyforge.models.items import StudyItem
from studyforge.models.pages import ExtractionResult
from studyforge.models.requests import Preferences
from studyforge.prompts import load_prompt

logger = logging.getLogger(__name__)


class EstimateResponse(BaseModel):
    """Estimation output contract."""

    estimated_count: int = Field(ge=0, description="Estimated number of items for the sample")


class InferenceAdapter:
    """
    Adapter between the capture/generation pipeline and the inference service.

    Clients are created lazily per target service and reused for every
    request with the same credentials.
    """

    def __init__(
        self,
        extraction: ExtractionConfig | None = None,
        temperature: float = 0.5,
        retry_attempts: int = 3,
        retry_wait_min: float = 4.0,
        client_factory=create_llm_client,
    ):
        """
        Initialize the adapter.

        Args:
            extraction: Image analysis settings
            temperature: Sampling temperature for item generation
            retry_attempts: Attempts per generation call on transient errors
            retry_wait_min: Minimum wait between generation retries
            client_factory: Callable building a raw client from a ServiceConfig
        """
        self.extraction = extraction or ExtractionConfig()
        self.temperature = temperature
        self._client_factory = client_factory
        self._clients: dict[tuple, Any] = {}
        self._retry = inference_retry(attempts=retry_attempts, wait_min=retry_wait_min)
        self._analysis_policy = StructuredOutputPolicy(ExtractionResult)
        self._estimate_policy = StructuredOutputPolicy(EstimateResponse)

    def get_client(self, service: ServiceConfig):
        key = service.cache_key()
        if key not in self._clients:
            logger.info(f"Creating {service.provider} client for {service.base_url} ({service.model})")
            self._clients[key] = self._client_factory(service)
        return self._clients[key]

    async def health_check(self, service: ServiceConfig) -> bool:
        return await self.get_client(service).health_check()

    async def analyze(self, image_data: str, service: ServiceConfig) -> ExtractionResult:
        """
        Extract text, figures and metadata from a page image.

        Args:
            image_data: Base64-encoded page image
            service: Target service

        Returns:
            ExtractionResult; error=True when the page has little or no text

        Raises:
            InferenceServiceError: Service unreachable, auth, rate limit or 5xx.
                Not retried here; the capture queue owns retries for analysis.
        """
        client = self.get_client(service)
        messages = [
            {"role": "system", "content": load_prompt("analysis")},
            {"role": "user", "content": load_prompt("analysis_user").strip()},
        ]
        raw = await client.complete(
            messages,
            schema=self._analysis_policy.schema,
            schema_name="page_analysis",
            images=[image_data],
            temperature=0.0,
            max_tokens=self.extraction.max_tokens,
        )

        outcome = self._analysis_policy.parse(raw)
        if outcome.ok:
            result = outcome.value
            logger.info(f"Page analysis parsed ({outcome.path}): {len(result.text)} chars")
        else:
            logger.info("Page analysis was not JSON, falling back to regex extraction")
            result = extract_from_text(raw, self.extraction.min_text_length)

        if len(result.text.strip()) < self.extraction.min_text_length and not result.error:
            result = result.model_copy(update={"error": True})
        return result

    async def generate(
        self,
        chunk: ContentChunk,
        kind: str,
        count: int,
        preferences: Preferences,
        service: ServiceConfig,
    ) -> list[StudyItem]:
        """
        Generate up to `count` items of one kind from a chunk.

        Items come back without id and created_at.

        Raises:
            UnsupportedKindError: Unknown kind tag
            InferenceServiceError: Service failure after retries
            ResponseParseError: Neither the schema request nor the plain JSON
                request produced any valid item
        """
        item_kind = get_kind(kind)
        policy = ItemBatchPolicy(item_kind.item_model)
        client = self.get_client(service)
        complete = self._retry(client.complete)

        raw = await complete(
            item_kind.build_messages(chunk, count, preferences),
            schema=policy.schema,
            schema_name=f"{kind}_batch",
            temperature=self.temperature,
        )
        outcome = policy.parse(raw)
        if outcome.ok:
            logger.info(f"Generated {len(outcome.value.items)} {kind} items ({outcome.path})")
            return list(outcome.value.items)

        logger.info(f"Structured {kind} generation unparseable, retrying with plain JSON mode")
        raw = await complete(
            item_kind.build_messages(chunk, count, preferences, fallback=True),
            json_mode=True,
            temperature=self.temperature,
        )
        batch = policy.parse_loose(raw) if raw and raw.strip() else None
        if batch is None:
            raise ResponseParseError(
                f"Could not parse {kind} items for pages {', '.join(chunk.page_ids)}"
            )
        logger.info(f"Generated {len(batch.items)} {kind} items (json_object fallback)")
        return list(batch.items)

    async def estimate_count(
        self,
        sample_text: str,
        sample_pages: int,
        total_pages: int,
        service: ServiceConfig,
    ) -> int | None:
        """
        Ask the service how many items the sample could yield.

        Returns:
            The unscaled sample estimate, or None if the response is unusable

        Raises:
            InferenceServiceError: Service failure
        """
        client = self.get_client(service)
        messages = [
            {"role": "system", "content": load_prompt("estimate")},
            {
                "role": "user",
                "content": load_prompt("estimate_user").format(
                    sample_pages=sample_pages, total_pages=total_pages, sample=sample_text
                ),
            },
        ]
        raw = await client.complete(
            messages,
            schema=self._estimate_policy.schema,
            schema_name="estimation",
            temperature=0.2,
        )
        outcome = self._estimate_policy.parse(raw)
        if not outcome.ok:
            logger.info("Estimation response unusable")
            return None
        return outcome.value.estimated_count
