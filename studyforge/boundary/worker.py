# studyforge/boundary/worker.py
"""
Isolated generation worker.

Owns one orchestrator and talks to the outside only through two message
channels: an inbox of request JSON and an outbox of response JSON. Runs at
most one generation or estimation at a time.
"""

import asyncio
import logging

from pydantic import ValidationError

from studyforge.boundary.messages import (
    CancelMessage,
    CompleteMessage,
    ErrorMessage,
    EstimateMessage,
    EstimateResultMessage,
    GenerateMessage,
    StatusMessage,
    decode_request,
    encode,
)
from studyforge.generation.orchestrator import GenerationOrchestrator
from studyforge.models.requests import GenerationStatus

logger = logging.getLogger(__name__)


class GenerationWorker:
    """
    Message-driven wrapper around a GenerationOrchestrator.

    Features:
        - Reads request messages from `inbox`, answers on `outbox`
        - Rejects a second generate while busy ("Already generating")
        - Cancel stops the run between chunks and ends it with status idle,
          never with a complete message
    """

    def __init__(self, orchestrator: GenerationOrchestrator, name: str = "worker") -> None:
        self.name = name
        self.inbox: asyncio.Queue[str] = asyncio.Queue()
        self.outbox: asyncio.Queue[str] = asyncio.Queue()
        self._orchestrator = orchestrator
        self._task: asyncio.Task | None = None
        self._job: asyncio.Task | None = None
        self._cancel_event = asyncio.Event()
        self._last_state: str | None = None

    @property
    def busy(self) -> bool:
        return self._job is not None and not self._job.done()

    def start(self) -> None:
        if self._task is not None:
            logger.warning(f"Worker {self.name} already started")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.debug(f"Worker {self.name} started")

    async def stop(self) -> None:
        """Stop the worker preemptively, abandoning any run in progress."""
        tasks = [t for t in (self._job, self._task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        logger.debug(f"Worker {self.name} stopped")

    def post(self, message: GenerateMessage | EstimateMessage | CancelMessage) -> None:
        self.inbox.put_nowait(encode(message))

    async def _run_loop(self) -> None:
        while True:
            raw = await self.inbox.get()
            try:
                await self._handle(raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Worker {self.name} failed handling message: {e}", exc_info=True)
                await self._send(ErrorMessage(error=str(e)))

    async def _handle(self, raw: str) -> None:
        try:
            message = decode_request(raw)
        except ValidationError as e:
            logger.warning(f"Worker {self.name} received invalid message: {e.error_count()} errors")
            await self._send(ErrorMessage(error=f"Invalid message: {e.errors()[0]['msg']}"))
            return

        if isinstance(message, CancelMessage):
            if self.busy:
                logger.info(f"Worker {self.name}: cancel requested")
                self._cancel_event.set()
            return

        if self.busy:
            await self._send(ErrorMessage(error="Already generating"))
            return

        self._cancel_event = asyncio.Event()
        self._last_state = None
        if isinstance(message, GenerateMessage):
            self._job = asyncio.create_task(self._run_generate(message))
        else:
            self._job = asyncio.create_task(self._run_estimate(message))

    async def _send(self, message) -> None:
        if isinstance(message, StatusMessage):
            self._last_state = message.status.status
        await self.outbox.put(encode(message))

    async def _on_status(self, status: GenerationStatus) -> None:
        await self._send(StatusMessage(status=status))

    async def _run_generate(self, message: GenerateMessage) -> None:
        try:
            items = await self._orchestrator.generate(
                message.pages,
                message.request,
                message.service,
                on_status=self._on_status,
                cancel_event=self._cancel_event,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Worker {self.name}: generation failed: {e}", exc_info=True)
            await self._send(
                StatusMessage(status=GenerationStatus(status="error", message=str(e), error=str(e)))
            )
            await self._send(ErrorMessage(error=str(e)))
            return

        if self._cancel_event.is_set():
            if self._last_state != "idle":
                await self._send(
                    StatusMessage(status=GenerationStatus(status="idle", message="Generation canceled"))
                )
            return
        await self._send(CompleteMessage(items=items))

    async def _run_estimate(self, message: EstimateMessage) -> None:
        await self._send(
            StatusMessage(status=GenerationStatus(status="estimating", message="Estimating item count"))
        )
        try:
            count = await self._orchestrator.estimate(
                message.pages, message.service, cancel_event=self._cancel_event
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Worker {self.name}: estimation failed: {e}", exc_info=True)
            await self._send(ErrorMessage(error=str(e)))
            return
        await self._send(EstimateResultMessage(estimated_count=count))
