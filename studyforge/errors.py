# studyforge/errors.py
"""
Exception hierarchy for studyforge.

Service-level failures are typed so callers can tell a retryable network
blip from a bad API key. Parse failures are only raised once every fallback
strategy has been exhausted.
"""


class StudyForgeError(Exception):
    """Base class for all studyforge errors."""


class InferenceServiceError(StudyForgeError):
    """The inference service could not be used (network, auth, quota, 5xx)."""

    hint = ""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        if self.hint and self.hint not in message:
            message = f"{message}. {self.hint}"
        super().__init__(message)


class InferenceConnectionError(InferenceServiceError):
    """Endpoint unreachable or request timed out."""

    hint = "Check the endpoint URL and that the service is running."


class InferenceAuthError(InferenceServiceError):
    """Credentials rejected (401/403)."""

    hint = "Please check your API key."


class InferenceRateLimitError(InferenceServiceError):
    """Service throttled the request (429)."""

    hint = "Rate limit exceeded. Please try again later."


class InferenceServerError(InferenceServiceError):
    """Service-side failure (5xx)."""

    hint = "There might be an issue with the inference service. Please try again later."


class ResponseParseError(StudyForgeError):
    """No parse strategy could turn the service response into the expected shape."""


class UnsupportedKindError(StudyForgeError):
    """Generation was requested for an item kind with no registered generator."""


class GenerationFailedError(StudyForgeError):
    """Generation could not make forward progress (every chunk failed at the service)."""


class ConnectionKeyError(StudyForgeError):
    """A connection key could not be decoded or encoded."""
