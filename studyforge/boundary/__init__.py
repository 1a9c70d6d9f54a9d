# studyforge/boundary/__init__.py
"""Execution boundary: message protocol, isolated worker and caller-side service."""

from .messages import (
    CancelMessage,
    CompleteMessage,
    ErrorMessage,
    EstimateMessage,
    EstimateResultMessage,
    GenerateMessage,
    StatusMessage,
    decode_request,
    decode_response,
    encode,
)
from .service import GenerationService
from .worker import GenerationWorker

__all__ = [
    "GenerateMessage",
    "EstimateMessage",
    "CancelMessage",
    "StatusMessage",
    "CompleteMessage",
    "ErrorMessage",
    "EstimateResultMessage",
    "encode",
    "decode_request",
    "decode_response",
    "GenerationWorker",
    "GenerationService",
]
