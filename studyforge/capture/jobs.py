# studyforge/capture/jobs.py
"""
Capture job records.

Internal mutable records owned by the PageCaptureQueue; they never cross the
execution boundary.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from studyforge.config.schema import ServiceConfig
from studyforge.models.pages import CaptureResult


class CaptureStatus(Enum):
    """Capture job lifecycle states."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


CompleteCallback = Callable[[CaptureResult], Any]
ErrorCallback = Callable[[BaseException, str], Any]
StatusChangeCallback = Callable[[str, CaptureStatus], Any]


@dataclass
class CaptureJob:
    """
    One page image on its way through image analysis.

    Mutated only by the queue pump.
    """

    job_id: str
    image_data: str
    service: ServiceConfig
    on_complete: CompleteCallback
    on_error: ErrorCallback
    on_status_change: StatusChangeCallback | None = None
    status: CaptureStatus = CaptureStatus.QUEUED
    retries: int = 0
    error: str | None = None
    backoff_pending: bool = False  # queued, but waiting out a retry delay
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_live(self) -> bool:
        return self.status in (CaptureStatus.QUEUED, CaptureStatus.PROCESSING)


@dataclass(frozen=True)
class QueueStatus:
    """Snapshot of job counts per status."""

    queued: int = 0
    processing: int = 0
    complete: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.queued + self.processing + self.complete + self.error
