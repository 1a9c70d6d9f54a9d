# studyforge/llm/openai_client.py
"""OpenAI-compatible client (OpenAI, LM Studio, Azure OpenAI)."""

import logging
from typing import Any

import httpx
import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from studyforge.errors import (
    InferenceAuthError,
    InferenceConnectionError,
    InferenceRateLimitError,
    InferenceServerError,
    InferenceServiceError,
)

logger = logging.getLogger(__name__)


def translate_openai_error(e: openai.OpenAIError) -> InferenceServiceError:
    """Map an openai SDK exception onto the typed service errors."""
    if isinstance(e, openai.APITimeoutError):
        return InferenceConnectionError(f"Request timed out: {e}")
    if isinstance(e, openai.APIConnectionError):
        return InferenceConnectionError(f"Connection failed: {e}")
    if isinstance(e, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return InferenceAuthError(str(e), e.status_code)
    if isinstance(e, openai.RateLimitError):
        return InferenceRateLimitError(str(e), e.status_code)
    if isinstance(e, openai.APIStatusError):
        if e.status_code >= 500:
            return InferenceServerError(str(e), e.status_code)
        return InferenceServiceError(str(e), e.status_code)
    return InferenceServiceError(str(e))


class OpenAICompatibleClient:
    """
    Async client for OpenAI-compatible chat completion endpoints.

    provider="openai" covers OpenAI itself and local servers such as
    LM Studio (http://localhost:1234/v1). provider="azure" talks to an Azure
    OpenAI resource, where `model` is the deployment name.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout: int = 120,
        azure: bool = False,
        api_version: str = "2024-10-21",
    ):
        """
        Initialize the client.

        Args:
            base_url: API base URL (Azure: resource endpoint)
            model: Model name (Azure: deployment name)
            api_key: API key ("lm-studio" placeholder is used when None)
            timeout: Request timeout in seconds
            azure: Use the Azure OpenAI client
            api_version: Azure API version
        """
        self.base_url = base_url
        self.model = model
        self._azure = azure
        if azure:
            self._client = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=base_url,
                azure_deployment=model,
                api_version=api_version,
                timeout=timeout,
            )
        else:
            self._client = AsyncOpenAI(
                base_url=base_url, api_key=api_key or "lm-studio", timeout=timeout
            )

    async def health_check(self) -> bool:
        """
        Check server health by listing available models.

        Returns:
            True if the server is reachable, False otherwise.
        """
        try:
            await self._client.models.list()
            return True
        except openai.NotFoundError:
            # Azure deployments do not always expose /models
            return True
        except (openai.OpenAIError, httpx.HTTPError) as e:
            logger.error(f"Health check failed for {self.base_url}: {e}")
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
        Run one chat completion and return the message text.

        Args:
            messages: Chat messages [{"role": ..., "content": ...}]
            schema: JSON schema the response must follow (primary structured path)
            schema_name: Name reported for the schema
            json_mode: Ask for any JSON object when no schema is given
            images: Base64-encoded JPEG images attached to the last user message
            temperature: Sampling temperature
            max_tokens: Response token limit

        Raises:
            InferenceServiceError: Typed connection/auth/rate-limit/server errors
        """
        messages = [dict(m) for m in messages]
        if images:
            last = messages[-1]
            parts: list[dict] = [{"type": "text", "text": last["content"]}]
            parts.extend(
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{img}"}}
                for img in images
            )
            last["content"] = parts

        kwargs: dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema, "strict": False},
            }
        elif json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info(
            f"OpenAI.complete: model={self.model}, azure={self._azure}, "
            f"messages={len(messages)}, images={len(images or [])}, "
            f"structured={'response_format' in kwargs}"
        )

        try:
            response = await self._client.chat.completions.create(
                model=self.model, messages=messages, **kwargs
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e

        if not response.choices or response.choices[0].message is None:
            raise InferenceServiceError("Invalid response format from inference service")

        result = response.choices[0].message.content or ""
        logger.info(f"OpenAI.complete: {len(result)} chars")
        return result
