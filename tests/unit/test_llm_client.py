# tests/unit/test_llm_client.py
"""
Tests for the raw LLM clients, error translation and retry policy.

Tests cover:
    - Ollama streaming accumulation, format and image handling
    - Ollama and OpenAI error translation onto typed service errors
    - OpenAI response_format selection and image parts
    - Client factory by provider
    - Which errors are retried
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest
from ollama import ResponseError

from studyforge.config.schema import ServiceConfig
from studyforge.errors import (
    InferenceAuthError,
    InferenceConnectionError,
    InferenceRateLimitError,
    InferenceServerError,
    InferenceServiceError,
    ResponseParseError,
)
from studyforge.llm.client import OllamaClient, translate_response_error
from studyforge.llm.factory import create_llm_client
from studyforge.llm.openai_client import OpenAICompatibleClient, translate_openai_error
from studyforge.llm.retry import inference_retry, is_retryable

_REQUEST = httpx.Request("POST", "http://localhost:1234/v1/chat/completions")


def _status_error(cls, status: int):
    return cls("failure", response=httpx.Response(status, request=_REQUEST), body=None)


def _stream(*parts):
    async def gen():
        for part in parts:
            yield {"message": {"content": part}}

    return gen()


class TestOllamaClient:
    @pytest.mark.asyncio
    async def test_complete_accumulates_stream(self):
        client = OllamaClient("http://localhost:11434", "llama3.2-vision")
        chat = AsyncMock(return_value=_stream('{"text": ', '"hello"', "}"))

        with patch.object(client.client, "chat", chat):
            result = await client.complete(
                [{"role": "user", "content": "read this"}],
                schema={"type": "object"},
                images=["aGVsbG8="],
                max_tokens=100,
            )

        assert result == '{"text": "hello"}'
        kwargs = chat.call_args.kwargs
        assert kwargs["format"] == {"type": "object"}
        assert kwargs["messages"][-1]["images"] == ["aGVsbG8="]
        assert kwargs["options"] == {"temperature": 0.0, "num_predict": 100}
        assert kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_json_mode_without_schema(self):
        client = OllamaClient("http://localhost:11434", "llama3.2-vision")
        chat = AsyncMock(return_value=_stream("{}"))
        with patch.object(client.client, "chat", chat):
            await client.complete([{"role": "user", "content": "x"}], json_mode=True)
        assert chat.call_args.kwargs["format"] == "json"

    @pytest.mark.asyncio
    async def test_response_error_translated(self):
        client = OllamaClient("http://localhost:11434", "llama3.2-vision")
        chat = AsyncMock(side_effect=ResponseError("model overloaded", 503))
        with patch.object(client.client, "chat", chat):
            with pytest.raises(InferenceServerError):
                await client.complete([{"role": "user", "content": "x"}])

    @pytest.mark.asyncio
    async def test_connect_error_translated(self):
        client = OllamaClient("http://localhost:11434", "llama3.2-vision")
        chat = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(client.client, "chat", chat):
            with pytest.raises(InferenceConnectionError, match="Cannot reach Ollama"):
                await client.complete([{"role": "user", "content": "x"}])

    @pytest.mark.asyncio
    async def test_health_check(self):
        client = OllamaClient("http://localhost:11434", "llama3.2-vision")
        models = {"models": [{"model": "llava:latest"}]}
        with patch.object(client.client, "list", AsyncMock(return_value=models)):
            # Missing model still counts as healthy
            assert await client.health_check() is True
        with patch.object(client.client, "list", AsyncMock(side_effect=httpx.ConnectError("x"))):
            assert await client.health_check() is False

    @pytest.mark.parametrize(
        "status,expected",
        [
            (401, InferenceAuthError),
            (403, InferenceAuthError),
            (429, InferenceRateLimitError),
            (504, InferenceConnectionError),
            (500, InferenceServerError),
        ],
    )
    def test_translate_response_error(self, status, expected):
        assert type(translate_response_error(ResponseError("x", status))) is expected

    def test_auth_error_carries_hint(self):
        error = translate_response_error(ResponseError("unauthorized", 401))
        assert "Please check your API key." in str(error)
        assert error.status_code == 401


class TestOpenAIClient:
    @staticmethod
    def _response(content):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    @pytest.mark.asyncio
    async def test_schema_request_and_images(self):
        client = OpenAICompatibleClient("http://localhost:1234/v1", "qwen2-vl")
        create = AsyncMock(return_value=self._response('{"text": "hi"}'))

        with patch.object(client._client.chat.completions, "create", create):
            result = await client.complete(
                [{"role": "user", "content": "read"}],
                schema={"type": "object"},
                schema_name="page_analysis",
                images=["abc"],
            )

        assert result == '{"text": "hi"}'
        kwargs = create.call_args.kwargs
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["name"] == "page_analysis"
        parts = kwargs["messages"][-1]["content"]
        assert parts[0] == {"type": "text", "text": "read"}
        assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,abc"

    @pytest.mark.asyncio
    async def test_json_mode(self):
        client = OpenAICompatibleClient("http://localhost:1234/v1", "qwen2-vl")
        create = AsyncMock(return_value=self._response("{}"))
        with patch.object(client._client.chat.completions, "create", create):
            await client.complete([{"role": "user", "content": "x"}], json_mode=True)
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_empty_choices_is_service_error(self):
        client = OpenAICompatibleClient("http://localhost:1234/v1", "qwen2-vl")
        create = AsyncMock(return_value=SimpleNamespace(choices=[]))
        with patch.object(client._client.chat.completions, "create", create):
            with pytest.raises(InferenceServiceError, match="Invalid response format"):
                await client.complete([{"role": "user", "content": "x"}])

    @pytest.mark.asyncio
    async def test_sdk_error_translated(self):
        client = OpenAICompatibleClient("http://localhost:1234/v1", "qwen2-vl")
        create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))
        with patch.object(client._client.chat.completions, "create", create):
            with pytest.raises(InferenceRateLimitError):
                await client.complete([{"role": "user", "content": "x"}])

    def test_translate_openai_error(self):
        assert isinstance(
            translate_openai_error(openai.APIConnectionError(request=_REQUEST)),
            InferenceConnectionError,
        )
        assert isinstance(
            translate_openai_error(openai.APITimeoutError(request=_REQUEST)),
            InferenceConnectionError,
        )
        assert isinstance(
            translate_openai_error(_status_error(openai.AuthenticationError, 401)),
            InferenceAuthError,
        )
        assert isinstance(
            translate_openai_error(_status_error(openai.InternalServerError, 502)),
            InferenceServerError,
        )
        assert type(translate_openai_error(_status_error(openai.BadRequestError, 400))) is (
            InferenceServiceError
        )


class TestFactory:
    def test_provider_selects_client(self):
        assert isinstance(create_llm_client(ServiceConfig(provider="ollama")), OllamaClient)
        openai_client = create_llm_client(
            ServiceConfig(provider="openai", base_url="http://localhost:1234/v1", api_key="k")
        )
        assert isinstance(openai_client, OpenAICompatibleClient)
        azure = create_llm_client(
            ServiceConfig(
                provider="azure",
                base_url="https://example.openai.azure.com",
                api_key="k",
                model="gpt-4o",
            )
        )
        assert isinstance(azure, OpenAICompatibleClient)
        assert azure._azure is True


class TestRetry:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (InferenceConnectionError("down"), True),
            (InferenceRateLimitError("slow", 429), True),
            (InferenceServerError("boom", 502), True),
            (InferenceServerError("model requires more system memory", 500), False),
            (InferenceAuthError("nope", 401), False),
            (ResponseParseError("garbage"), False),
            (ValueError("x"), False),
        ],
    )
    def test_is_retryable(self, exc, expected):
        assert is_retryable(exc) is expected

    @pytest.mark.asyncio
    async def test_retries_then_reraises_typed_error(self):
        calls = []

        @inference_retry(attempts=3, wait_min=0, wait_max=0)
        async def flaky():
            calls.append(1)
            raise InferenceServerError("boom", 503)

        with pytest.raises(InferenceServerError):
            await flaky()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self):
        calls = []

        @inference_retry(attempts=3, wait_min=0, wait_max=0)
        async def rejected():
            calls.append(1)
            raise InferenceAuthError("nope", 401)

        with pytest.raises(InferenceAuthError):
            await rejected()
        assert len(calls) == 1
