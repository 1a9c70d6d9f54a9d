# studyforge/capture/__init__.py
"""Page capture queue and job records."""

from .jobs import CaptureJob, CaptureStatus, QueueStatus
from .queue import PageCaptureQueue

__all__ = ["CaptureJob", "CaptureStatus", "QueueStatus", "PageCaptureQueue"]
