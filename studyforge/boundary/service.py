# studyforge/boundary/service.py
"""
Caller side of the execution boundary.

Keeps one worker per generation key (e.g. a series of pages), posts request
messages to it and turns its responses back into callbacks.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from studyforge.boundary.messages import (
    CancelMessage,
    CompleteMessage,
    ErrorMessage,
    EstimateMessage,
    EstimateResultMessage,
    GenerateMessage,
    StatusMessage,
    decode_response,
)
from studyforge.boundary.worker import GenerationWorker
from studyforge.config.schema import ServiceConfig
from studyforge.errors import StudyForgeError
from studyforge.generation.orchestrator import GenerationOrchestrator
from studyforge.models.items import StudyItem
from studyforge.models.pages import SourcePage
from studyforge.models.requests import GenerationRequest, GenerationStatus

logger = logging.getLogger(__name__)

StatusHandler = Callable[[GenerationStatus], Any]
CompleteHandler = Callable[[list[StudyItem]], Any]
ErrorHandler = Callable[[str], Any]


async def _maybe_await(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    try:
        result_or_coro = callback(*args)
        if hasattr(result_or_coro, "__await__"):
            await result_or_coro
    except Exception as e:
        logger.error(f"Generation callback failed: {e}", exc_info=True)


@dataclass
class _ActiveGeneration:
    worker: GenerationWorker
    listener: asyncio.Task | None = None
    canceled: bool = False
    done: asyncio.Event = field(default_factory=asyncio.Event)


class GenerationService:
    """
    Manages generation workers keyed by generation key.

    Starting a generation for a key that already has one terminates the old
    worker first; its late results are never delivered.
    """

    def __init__(self, orchestrator_factory: Callable[[], GenerationOrchestrator]) -> None:
        """
        Initialize the service.

        Args:
            orchestrator_factory: Builds a fresh orchestrator for each worker
        """
        self._factory = orchestrator_factory
        self._active: dict[str, _ActiveGeneration] = {}

    def active_generations(self) -> list[str]:
        return list(self._active)

    async def start_generation(
        self,
        key: str,
        pages: list[SourcePage],
        service: ServiceConfig,
        request: GenerationRequest,
        on_status: StatusHandler | None = None,
        on_complete: CompleteHandler | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        """
        Start generating for a key, replacing any active generation for it.

        Callbacks may be plain functions or coroutines. Exactly one of
        on_complete / on_error fires, unless the run is canceled or terminated.
        """
        if key in self._active:
            logger.info(f"Replacing active generation for {key}")
            await self.terminate(key)

        worker = GenerationWorker(self._factory(), name=key)
        worker.start()
        entry = _ActiveGeneration(worker=worker)
        self._active[key] = entry
        entry.listener = asyncio.create_task(
            self._listen(key, entry, on_status, on_complete, on_error)
        )
        worker.post(GenerateMessage(pages=pages, service=service, request=request))
        logger.info(f"Started generation for {key} ({len(pages)} pages)")

    async def _listen(
        self,
        key: str,
        entry: _ActiveGeneration,
        on_status: StatusHandler | None,
        on_complete: CompleteHandler | None,
        on_error: ErrorHandler | None,
    ) -> None:
        try:
            while True:
                message = decode_response(await entry.worker.outbox.get())
                if isinstance(message, StatusMessage):
                    await _maybe_await(on_status, message.status)
                    if message.status.status == "idle":
                        break
                elif isinstance(message, CompleteMessage):
                    if not entry.canceled:
                        await _maybe_await(on_complete, list(message.items))
                    break
                elif isinstance(message, ErrorMessage):
                    if not entry.canceled:
                        await _maybe_await(on_error, message.error)
                    break
        finally:
            entry.done.set()
            if self._active.get(key) is entry:
                del self._active[key]
            await entry.worker.stop()

    async def wait(self, key: str) -> None:
        """Wait until the active generation for a key settles (no-op if none)."""
        entry = self._active.get(key)
        if entry is not None:
            await entry.done.wait()

    def cancel(self, key: str) -> bool:
        """
        Ask the generation for a key to stop after its current chunk.

        Partial results are discarded. Returns False if nothing is running.
        """
        entry = self._active.get(key)
        if entry is None:
            return False
        entry.canceled = True
        entry.worker.post(CancelMessage())
        logger.info(f"Cancel requested for {key}")
        return True

    async def terminate(self, key: str) -> bool:
        """Stop the worker for a key immediately. Returns False if none was active."""
        entry = self._active.pop(key, None)
        if entry is None:
            return False
        entry.canceled = True
        if entry.listener is not None and not entry.listener.done():
            entry.listener.cancel()
            await asyncio.gather(entry.listener, return_exceptions=True)
        await entry.worker.stop()
        entry.done.set()
        logger.info(f"Terminated generation for {key}")
        return True

    async def estimate(self, pages: list[SourcePage], service: ServiceConfig) -> int:
        """
        Estimate an item count on a short-lived worker.

        Raises:
            StudyForgeError: The worker answered with an error
        """
        worker = GenerationWorker(self._factory(), name="estimate")
        worker.start()
        try:
            worker.post(EstimateMessage(pages=pages, service=service))
            while True:
                message = decode_response(await worker.outbox.get())
                if isinstance(message, EstimateResultMessage):
                    return message.estimated_count
                if isinstance(message, ErrorMessage):
                    raise StudyForgeError(f"Estimation failed: {message.error}")
        finally:
            await worker.stop()

    async def shutdown(self) -> None:
        """Terminate every active generation."""
        for key in list(self._active):
            await self.terminate(key)
        logger.info("GenerationService shut down")
