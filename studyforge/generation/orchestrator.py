# studyforge/generation/orchestrator.py
"""
Multi-kind study item generation orchestrator.

Chunks the source pages, asks the inference service for a batch of items per
chunk and kind, deduplicates and truncates each kind's results, and reports
progress after every chunk. Cancellation is checked between chunks.
"""

import asyncio
import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from studyforge.config.schema import GenerationConfig, ServiceConfig
from studyforge.errors import (
    GenerationFailedError,
    InferenceConnectionError,
    InferenceServiceError,
)
from studyforge.generation.chunker import ContentChunk, chunk_pages
from studyforge.generation.dedupe import dedupe
from studyforge.generation.kinds import ItemKind, get_kind
from studyforge.models.items import StudyItem
from studyforge.models.pages import SourcePage
from studyforge.models.requests import GenerationRequest, GenerationStatus

if TYPE_CHECKING:
    from studyforge.inference.adapter import InferenceAdapter

logger = logging.getLogger(__name__)

StatusCallback = Callable[[GenerationStatus], Any]


def finalize_items(items: list[StudyItem]) -> list[StudyItem]:
    """Assign a fresh id and creation timestamp to each item."""
    now = datetime.now(timezone.utc)
    return [
        item.model_copy(update={"id": str(uuid.uuid4()), "created_at": now}) for item in items
    ]


class GenerationOrchestrator:
    """
    Runs one generation or estimation at a time for a set of pages.

    Workflow per kind:
    1. Chunk the pages within the token budget
    2. Ask for ceil(target / chunks) items per chunk, in order
    3. Skip chunks that fail, recording the failure in the status message
    4. Dedupe, truncate to the kind's target, assign ids

    Example:
        orchestrator = GenerationOrchestrator(adapter, config.generation)
        items = await orchestrator.generate(pages, request, service, on_status, cancel_event)
    """

    def __init__(self, adapter: "InferenceAdapter", config: GenerationConfig | None = None) -> None:
        self._adapter = adapter
        self.config = config or GenerationConfig()

    async def _emit(self, on_status: StatusCallback | None, status: GenerationStatus) -> None:
        if on_status is None:
            return
        try:
            result_or_coro = on_status(status)
            if hasattr(result_or_coro, "__await__"):
                await result_or_coro
        except Exception as e:
            logger.warning(f"Status callback failed: {e}", exc_info=True)

    def _chunk(self, pages: list[SourcePage]) -> list[ContentChunk]:
        return chunk_pages(
            pages,
            max_tokens=self.config.max_tokens_per_chunk,
            tokens_per_char=self.config.tokens_per_char,
        )

    async def generate(
        self,
        pages: list[SourcePage],
        request: GenerationRequest,
        service: ServiceConfig,
        on_status: StatusCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[StudyItem]:
        """
        Generate items for every kind in the request.

        Args:
            pages: Source pages in reading order
            request: Kinds, counts, preferences and overall cap
            service: Target inference service
            on_status: Called (sync or async) with every status update
            cancel_event: Set to stop between chunks

        Returns:
            Finalized items, at most request.max_total. On cancellation the
            partial result gathered so far (the final status is then "idle").

        Raises:
            ValueError: No pages
            UnsupportedKindError: A requested kind has no generator
            InferenceConnectionError: Health check failed
            GenerationFailedError: Every chunk failed and the service was at fault
        """
        if not pages:
            raise ValueError("No pages to generate from")
        plan: list[tuple[ItemKind, int]] = [
            (get_kind(target.kind), target.count) for target in request.widgets
        ]

        if self.config.health_check and not await self._adapter.health_check(service):
            raise InferenceConnectionError(
                f"Inference service at {service.base_url} is not reachable"
            )

        chunks = self._chunk(pages)
        total = len(chunks) * len(plan)
        progress = 0
        remaining = request.max_total
        results: list[StudyItem] = []
        kind_counts: dict[str, int] = {}
        attempted = failed = service_failures = 0

        logger.info(
            f"Generating {request.requested_total} items ({', '.join(k.tag for k, _ in plan)}) "
            f"from {len(pages)} pages in {len(chunks)} chunks"
        )
        await self._emit(
            on_status,
            GenerationStatus(
                status="generating", progress=0, total=total, message="Starting generation",
                kind=plan[0][0].tag, kind_counts={},
            ),
        )

        for item_kind, count in plan:
            target = min(count, remaining)
            if target <= 0:
                logger.info(f"Skipping {item_kind.tag}: total limit of {request.max_total} reached")
                progress += len(chunks)
                continue

            per_chunk = math.ceil(target / len(chunks))
            collected: list[StudyItem] = []

            for index, chunk in enumerate(chunks, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    results.extend(self._finish_kind(item_kind, collected, target, kind_counts))
                    await self._emit_canceled(on_status, progress, total, kind_counts)
                    return results

                attempted += 1
                try:
                    items = await self._adapter.generate(
                        chunk, item_kind.tag, per_chunk, request.preferences, service
                    )
                    collected.extend(items)
                    message = f"Generated {len(collected)} {item_kind.label} ({index}/{len(chunks)} chunks)"
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    failed += 1
                    if isinstance(e, InferenceServiceError):
                        service_failures += 1
                    logger.warning(
                        f"Chunk {index}/{len(chunks)} failed for {item_kind.tag}: {e}"
                    )
                    message = f"Error in chunk {index}/{len(chunks)}: {e}"

                progress += 1
                await self._emit(
                    on_status,
                    GenerationStatus(
                        status="generating", progress=progress, total=total, message=message,
                        kind=item_kind.tag,
                        kind_counts={**kind_counts, item_kind.tag: len(collected)},
                    ),
                )

            finished = self._finish_kind(item_kind, collected, target, kind_counts)
            results.extend(finished)
            remaining -= len(finished)

        # A cancel during the last chunk still ends idle, never complete
        if cancel_event is not None and cancel_event.is_set():
            await self._emit_canceled(on_status, progress, total, kind_counts)
            return results

        if attempted and failed == attempted and service_failures:
            raise GenerationFailedError(
                f"All {attempted} generation requests failed; "
                f"the inference service could not be used"
            )

        logger.info(f"Generation complete: {kind_counts}")
        await self._emit(
            on_status,
            GenerationStatus(
                status="complete", progress=total, total=total,
                message=f"Generated {len(results)} items", kind_counts=dict(kind_counts),
            ),
        )
        return results

    async def _emit_canceled(
        self,
        on_status: StatusCallback | None,
        progress: int,
        total: int,
        kind_counts: dict[str, int],
    ) -> None:
        logger.info(f"Generation canceled after {progress}/{total} chunks")
        await self._emit(
            on_status,
            GenerationStatus(
                status="idle", progress=progress, total=total,
                message="Generation canceled", kind_counts=dict(kind_counts),
            ),
        )

    def _finish_kind(
        self,
        item_kind: ItemKind,
        collected: list[StudyItem],
        target: int,
        kind_counts: dict[str, int],
    ) -> list[StudyItem]:
        unique = dedupe(collected, self.config.similarity_threshold)[:target]
        kind_counts[item_kind.tag] = len(unique)
        return finalize_items(unique)

    def _heuristic(self, page_count: int) -> int:
        return self._clamp(page_count * self.config.estimate_items_per_page)

    def _clamp(self, value: int) -> int:
        return min(max(value, self.config.estimate_min), self.config.estimate_max)

    async def estimate(
        self,
        pages: list[SourcePage],
        service: ServiceConfig,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """
        Estimate how many items the pages could yield.

        Samples the first pages and asks the service, scaling its answer by
        total/sample pages. Falls back to a per-page heuristic when there is
        too little to sample, or the call times out, fails or is canceled.

        Returns:
            Estimate clamped to [estimate_min, estimate_max]
        """
        heuristic = self._heuristic(len(pages))
        sample_size = min(len(pages), self.config.estimate_sample_pages)
        if len(pages) < 2:
            return heuristic

        sample_text = "\n\n".join(page.text for page in pages[:sample_size])
        if len(sample_text) < self.config.min_sample_chars:
            logger.info("Sample content too small, using heuristic estimate")
            return heuristic
        if cancel_event is not None and cancel_event.is_set():
            return heuristic

        try:
            sample_estimate = await asyncio.wait_for(
                self._adapter.estimate_count(sample_text, sample_size, len(pages), service),
                timeout=self.config.estimate_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Estimation timed out after {self.config.estimate_timeout}s")
            return heuristic
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Estimation failed, using heuristic: {e}")
            return heuristic

        if sample_estimate is None or (cancel_event is not None and cancel_event.is_set()):
            return heuristic
        scaled = round(sample_estimate * len(pages) / sample_size)
        logger.info(f"Estimated {scaled} items (sample {sample_estimate} x {len(pages)}/{sample_size})")
        return self._clamp(scaled)
