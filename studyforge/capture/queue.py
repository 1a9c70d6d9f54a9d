# studyforge/capture/queue.py
"""
Background queue for page image analysis.

Drives captured page images through the inference adapter with a bounded
number of concurrent requests, automatic retries and exponential backoff.
All queue state is owned by one asyncio event loop; the pump never awaits
while it selects and dispatches jobs, so no lock is needed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from studyforge.capture.jobs import (
    CaptureJob,
    CaptureStatus,
    CompleteCallback,
    ErrorCallback,
    QueueStatus,
    StatusChangeCallback,
)
from studyforge.config.schema import CaptureConfig, ServiceConfig

if TYPE_CHECKING:
    from studyforge.inference.adapter import InferenceAdapter

logger = logging.getLogger(__name__)


class PageCaptureQueue:
    """
    Bounded-concurrency image analysis queue.

    Features:
        - Dispatches queued jobs in enqueue order, at most max_concurrent at once
        - Retries failed jobs up to max_retries times after backoff_base ** n seconds
        - Manual retry of failed jobs (no backoff)
        - Completion/error callbacks fire once per terminal settlement
    """

    def __init__(
        self,
        adapter: "InferenceAdapter",
        config: CaptureConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the queue.

        Args:
            adapter: Adapter whose analyze() processes each image
            config: Concurrency, retry and backoff settings
            sleep: Coroutine used to wait out retry backoff
        """
        self._adapter = adapter
        self.config = config or CaptureConfig()
        self._sleep = sleep
        self._jobs: list[CaptureJob] = []
        self._in_flight = 0
        self._tasks: set[asyncio.Task] = set()
        self._backoff_tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        logger.info(
            f"Initialized PageCaptureQueue (max_concurrent={self.config.max_concurrent}, "
            f"max_retries={self.config.max_retries})"
        )

    @property
    def jobs(self) -> list[CaptureJob]:
        """Jobs in queue order (a copy of the list; records are live)."""
        return list(self._jobs)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def get_job(self, job_id: str) -> CaptureJob | None:
        return next((job for job in self._jobs if job.job_id == job_id), None)

    def enqueue(
        self,
        job_id: str,
        image_data: str,
        service: ServiceConfig,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
        on_status_change: StatusChangeCallback | None = None,
    ) -> CaptureJob:
        """
        Add an image to the queue and start processing if a slot is free.

        Args:
            job_id: Unique job identifier (also the resulting page id)
            image_data: Base64-encoded image
            service: Inference service credentials for this job
            on_complete: Called with the CaptureResult on success
            on_error: Called with (exception, job_id) once retries are exhausted
            on_status_change: Called with (job_id, status) on every transition

        Returns:
            The queued job record

        Raises:
            ValueError: If a live job with the same id is already queued
            RuntimeError: If the queue is closed
        """
        if self._closed:
            raise RuntimeError("Capture queue is closed")
        existing = self.get_job(job_id)
        if existing is not None:
            if existing.is_live:
                raise ValueError(f"Job {job_id} is already in the queue")
            self._jobs.remove(existing)

        job = CaptureJob(
            job_id=job_id,
            image_data=image_data,
            service=service,
            on_complete=on_complete,
            on_error=on_error,
            on_status_change=on_status_change,
        )
        self._jobs.append(job)
        logger.info(f"Enqueued capture job {job_id}")
        self._set_status(job, CaptureStatus.QUEUED)
        self._pump()
        return job

    def get_status(self) -> QueueStatus:
        counts = {status: 0 for status in CaptureStatus}
        for job in self._jobs:
            counts[job.status] += 1
        return QueueStatus(
            queued=counts[CaptureStatus.QUEUED],
            processing=counts[CaptureStatus.PROCESSING],
            complete=counts[CaptureStatus.COMPLETE],
            error=counts[CaptureStatus.ERROR],
        )

    def retry(self, job_id: str) -> bool:
        """
        Requeue a failed job immediately with a fresh retry budget.

        Returns:
            True if a job in error state was requeued
        """
        job = self.get_job(job_id)
        if job is None or job.status is not CaptureStatus.ERROR:
            return False
        job.retries = 0
        job.error = None
        logger.info(f"Manual retry of capture job {job_id}")
        self._set_status(job, CaptureStatus.QUEUED)
        self._pump()
        return True

    def clear_completed(self) -> int:
        """Drop completed jobs. Returns the number removed."""
        before = len(self._jobs)
        self._jobs = [job for job in self._jobs if job.status is not CaptureStatus.COMPLETE]
        return before - len(self._jobs)

    async def wait_idle(self) -> None:
        """Wait until nothing is queued, processing or waiting out a backoff."""
        await self._idle.wait()

    async def close(self) -> None:
        """Cancel pending backoffs and in-flight analysis."""
        self._closed = True
        pending = list(self._backoff_tasks) + list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._idle.set()
        logger.info("PageCaptureQueue closed")

    def _pump(self) -> None:
        while not self._closed and self._in_flight < self.config.max_concurrent:
            job = next(
                (
                    j
                    for j in self._jobs
                    if j.status is CaptureStatus.QUEUED and not j.backoff_pending
                ),
                None,
            )
            if job is None:
                break
            self._set_status(job, CaptureStatus.PROCESSING)
            self._in_flight += 1
            task = asyncio.create_task(self._process(job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        self._update_idle()

    async def _process(self, job: CaptureJob) -> None:
        try:
            extraction = await self._adapter.analyze(job.image_data, job.service)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._handle_failure(job, e)
        else:
            job.error = None
            self._set_status(job, CaptureStatus.COMPLETE)
            logger.info(f"Capture job {job.job_id} complete")
            self._safe_call(job.on_complete, extraction.to_capture_result(job.job_id))
        finally:
            self._in_flight -= 1
            self._pump()

    def _handle_failure(self, job: CaptureJob, exc: Exception) -> None:
        max_retries = self.config.max_retries
        if job.retries < max_retries:
            job.retries += 1
            job.error = f"Error: {exc}. Retry {job.retries} of {max_retries}."
            job.backoff_pending = True
            self._set_status(job, CaptureStatus.QUEUED)
            delay = self.config.backoff_base ** job.retries
            logger.warning(
                f"Capture job {job.job_id} failed ({exc}); retry {job.retries}/{max_retries} in {delay:g}s"
            )
            task = asyncio.create_task(self._resume_after(job, delay))
            self._backoff_tasks.add(task)
            task.add_done_callback(self._backoff_tasks.discard)
        else:
            job.error = f"Failed after {max_retries} attempts: {exc}"
            self._set_status(job, CaptureStatus.ERROR)
            logger.error(f"Capture job {job.job_id} failed permanently: {exc}")
            self._safe_call(job.on_error, exc, job.job_id)

    async def _resume_after(self, job: CaptureJob, delay: float) -> None:
        await self._sleep(delay)
        job.backoff_pending = False
        self._pump()

    def _set_status(self, job: CaptureJob, status: CaptureStatus) -> None:
        job.status = status
        if job.on_status_change is not None:
            self._safe_call(job.on_status_change, job.job_id, status)

    def _update_idle(self) -> None:
        busy = self._in_flight > 0 or any(
            job.status is CaptureStatus.QUEUED for job in self._jobs
        )
        if busy:
            self._idle.clear()
        else:
            self._idle.set()

    def _safe_call(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Capture callback {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)
