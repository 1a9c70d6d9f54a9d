# studyforge/llm/retry.py
"""Retry logic for inference calls with exponential backoff."""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from studyforge.errors import (
    InferenceConnectionError,
    InferenceRateLimitError,
    InferenceServerError,
)

logger = logging.getLogger(__name__)


def is_retryable(exception: BaseException) -> bool:
    """
    Returns True if the exception should be retried.

    Retryable conditions:
    - InferenceConnectionError (service unreachable, timeout)
    - InferenceRateLimitError (429)
    - InferenceServerError (5xx)
      BUT NOT a 500 reporting "requires more system memory" (retrying will not help)

    Auth failures and parse failures are never retried.
    """
    if isinstance(exception, (InferenceConnectionError, InferenceRateLimitError)):
        return True

    if isinstance(exception, InferenceServerError):
        if "requires more system memory" in str(exception).lower():
            return False
        return True

    return False


def inference_retry(attempts: int = 3, wait_min: float = 4.0, wait_max: float = 60.0):
    """
    Build a tenacity retry decorator for inference calls.

    Args:
        attempts: Total attempts including the first call
        wait_min: Minimum wait between attempts in seconds
        wait_max: Maximum wait between attempts in seconds

    Returns:
        Decorator that retries transient service errors and re-raises the
        last typed error once attempts are exhausted.
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=wait_min, max=wait_max),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
