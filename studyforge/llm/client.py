# studyforge/llm/client.py
"""Ollama client with health checks, streaming completion, images and JSON schemas."""

import logging
from typing import Any

import httpx
from ollama import AsyncClient, ResponseError

from studyforge.errors import (
    InferenceAuthError,
    InferenceConnectionError,
    InferenceRateLimitError,
    InferenceServerError,
    InferenceServiceError,
)

logger = logging.getLogger(__name__)


def translate_response_error(e: ResponseError) -> InferenceServiceError:
    """Map an Ollama ResponseError onto the typed service errors."""
    status = e.status_code
    if status in (401, 403):
        return InferenceAuthError(f"Ollama rejected credentials: {e.error}", status)
    if status == 429:
        return InferenceRateLimitError(f"Ollama rate limited: {e.error}", status)
    if status in (408, 504):
        return InferenceConnectionError(f"Ollama request timed out: {e.error}", status)
    if status >= 500:
        return InferenceServerError(f"Ollama server error {status}: {e.error}", status)
    return InferenceServiceError(f"Ollama error {status}: {e.error}", status)


class OllamaClient:
    """
    Async Ollama client.

    Handles:
    - Health checks (server + model availability)
    - Streaming completion with content accumulation
    - Base64 images for vision models
    - Structured output via the `format` parameter (JSON schema or "json")
    """

    def __init__(self, base_url: str, model: str, timeout: int = 120):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (e.g., "http://localhost:11434")
            model: Model name (must be a vision model for page analysis)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.model = model
        self.client = AsyncClient(host=base_url, timeout=httpx.Timeout(timeout))

    async def health_check(self) -> bool:
        """
        Check Ollama server health and model availability.

        Returns:
            True if the server is reachable (the model can be pulled on demand),
            False if the server is down or unreachable.
        """
        try:
            models_response = await self.client.list()
            available_models = [
                m.get("model") or m.get("name") or "" for m in models_response.get("models", [])
            ]

            model_base = self.model.split(":")[0]
            if not any(model_base in m for m in available_models):
                logger.warning(
                    f"Model {self.model} not found in available models. "
                    f"It can be pulled on demand during generation."
                )
            return True

        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def complete(
        self,
        messages: list[dict],
        *,
        schema: dict[str, Any] | None = None,
        schema_name: str = "output",
        json_mode: bool = False,
        images: list[str] | None = None,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """
        Run one chat completion and return the accumulated text.

        Args:
            messages: Chat messages [{"role": ..., "content": ...}]
            schema: JSON schema the response must follow (primary structured path)
            schema_name: Unused by Ollama (kept for interface parity)
            json_mode: Ask for any JSON object when no schema is given
            images: Base64-encoded images attached to the last user message
            temperature: Sampling temperature
            max_tokens: Response token limit

        Raises:
            InferenceServiceError: Typed connection/auth/rate-limit/server errors
        """
        messages = [dict(m) for m in messages]
        if images:
            messages[-1]["images"] = list(images)

        options: dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens

        fmt: dict[str, Any] | str | None = schema or ("json" if json_mode else None)
        logger.info(
            f"Ollama.complete: model={self.model}, messages={len(messages)}, "
            f"images={len(images or [])}, structured={fmt is not None}"
        )

        accumulated = []
        try:
            async for chunk in await self.client.chat(
                model=self.model,
                messages=messages,
                format=fmt,
                options=options,
                stream=True,
            ):
                if content := chunk.get("message", {}).get("content"):
                    accumulated.append(content)
        except ResponseError as e:
            raise translate_response_error(e) from e
        except (httpx.ConnectError, httpx.TimeoutException, ConnectionError) as e:
            raise InferenceConnectionError(
                f"Cannot reach Ollama at {self.base_url}: {e}"
            ) from e

        result = "".join(accumulated)
        logger.info(f"Ollama.complete: {len(result)} chars")
        return result
