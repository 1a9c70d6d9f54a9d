# tests/unit/test_adapter.py
"""
Tests for InferenceAdapter against a scripted raw client.

Tests cover:
    - Page analysis: strict JSON, loose JSON, regex fallback, low-quality flag
    - Generation: schema request, json_mode fallback, parse failure
    - Estimation response handling
    - Client caching and retry of transient errors
"""

import pytest

from studyforge.config.schema import ExtractionConfig, ServiceConfig
from studyforge.errors import (
    InferenceAuthError,
    InferenceServerError,
    ResponseParseError,
    UnsupportedKindError,
)
from studyforge.generation.chunker import chunk_pages
from studyforge.inference.adapter import InferenceAdapter
from studyforge.models.items import ClozeItem, Flashcard
from studyforge.models.requests import Preferences


class ScriptedClient:
    """Raw client returning (or raising) scripted responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def health_check(self):
        return True

    async def complete(self, messages, **kwargs):
        self.calls.append((messages, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _adapter(*responses, **kwargs):
    client = ScriptedClient(responses)
    adapter = InferenceAdapter(retry_wait_min=0, client_factory=lambda service: client, **kwargs)
    return adapter, client


@pytest.fixture
def chunk(page_factory):
    return chunk_pages(page_factory(2))[0]


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_strict_json(self, service):
        adapter, client = _adapter(
            '{"text": "Enzymes lower activation energy.", "page": 42, '
            '"figures": [{"number": 3, "description": "Energy diagram"}]}'
        )

        result = await adapter.analyze("aW1n", service)

        assert result.page == "42"
        assert result.figures[0].number == "3"
        assert result.error is False
        _, kwargs = client.calls[0]
        assert kwargs["images"] == ["aW1n"]
        assert kwargs["temperature"] == 0.0
        assert "properties" in kwargs["schema"]

    @pytest.mark.asyncio
    async def test_loose_json(self, service):
        adapter, _ = _adapter(
            'Here is the page:\n```json\n{"text": "Enzymes lower activation energy."}\n```'
        )
        result = await adapter.analyze("aW1n", service)
        assert result.text == "Enzymes lower activation energy."

    @pytest.mark.asyncio
    async def test_regex_fallback(self, service):
        raw = "Chapter 5\nPage 88\nEnzymes are biological catalysts made of protein."
        adapter, _ = _adapter(raw)

        result = await adapter.analyze("aW1n", service)

        assert result.text == raw
        assert result.page == "88"
        assert result.chapter_name == "5"
        assert result.error is False

    @pytest.mark.asyncio
    async def test_short_text_flagged_low_quality(self, service):
        adapter, _ = _adapter('{"text": "Blurry"}')
        result = await adapter.analyze("aW1n", service)
        assert result.error is True

    @pytest.mark.asyncio
    async def test_min_text_length_configurable(self, service):
        adapter, _ = _adapter('{"text": "Blurry"}', extraction=ExtractionConfig(min_text_length=3))
        result = await adapter.analyze("aW1n", service)
        assert result.error is False

    @pytest.mark.asyncio
    async def test_service_error_propagates_without_retry(self, service):
        adapter, client = _adapter(InferenceServerError("boom", 503))
        with pytest.raises(InferenceServerError):
            await adapter.analyze("aW1n", service)
        assert len(client.calls) == 1


class TestGenerate:
    @pytest.mark.asyncio
    async def test_schema_request(self, service, chunk):
        adapter, client = _adapter(
            '{"items": [{"question": "What is a catalyst?", "answer": "A substance that '
            'speeds up a reaction.", "sourcePages": ["p1"]}]}'
        )

        items = await adapter.generate(chunk, "flashcard", 1, Preferences(), service)

        assert len(items) == 1
        assert isinstance(items[0], Flashcard)
        assert items[0].source_pages == ["p1"]
        assert items[0].id is None
        messages, kwargs = client.calls[0]
        assert kwargs["schema_name"] == "flashcard_batch"
        assert kwargs["temperature"] == 0.5
        assert "Page 1 (ID: p1)" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_json_mode_fallback(self, service, chunk):
        adapter, client = _adapter(
            "I'm sorry, I can't do that with a schema.",
            '{"cloze": "ignored", "results": [{"sentence": "A ____ B", "blanks": ["x"]}]}',
        )

        items = await adapter.generate(chunk, "cloze", 1, Preferences(), service)

        assert isinstance(items[0], ClozeItem)
        assert len(client.calls) == 2
        _, kwargs = client.calls[1]
        assert kwargs["json_mode"] is True
        assert "schema" not in kwargs

    @pytest.mark.asyncio
    async def test_both_stages_unparseable(self, service, chunk):
        adapter, _ = _adapter("nope", "still nope")
        with pytest.raises(ResponseParseError):
            await adapter.generate(chunk, "flashcard", 2, Preferences(), service)

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, service, chunk):
        adapter, client = _adapter(
            InferenceServerError("boom", 503),
            '{"items": [{"question": "Q", "answer": "A"}]}',
        )
        items = await adapter.generate(chunk, "flashcard", 1, Preferences(), service)
        assert len(items) == 1
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, service, chunk):
        adapter, client = _adapter(InferenceAuthError("bad key", 401))
        with pytest.raises(InferenceAuthError):
            await adapter.generate(chunk, "flashcard", 1, Preferences(), service)
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_unknown_kind(self, service, chunk):
        adapter, client = _adapter()
        with pytest.raises(UnsupportedKindError, match="supported"):
            await adapter.generate(chunk, "mindmap", 1, Preferences(), service)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_preferences_in_prompt(self, service, chunk):
        adapter, client = _adapter('{"items": [{"question": "Q", "answer": "A"}]}')
        prefs = Preferences(difficulty="hard", style="Socratic", include_humor=True)

        await adapter.generate(chunk, "flashcard", 1, prefs, service)

        user = client.calls[0][0][1]["content"]
        assert "hard" in user
        assert "Socratic" in user
        assert "humor" in user


class TestEstimate:
    @pytest.mark.asyncio
    async def test_returns_count(self, service):
        adapter, client = _adapter('{"estimated_count": 9}')
        assert await adapter.estimate_count("some text", 2, 10, service) == 9
        assert client.calls[0][1]["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_unusable_response(self, service):
        adapter, _ = _adapter("about a dozen")
        assert await adapter.estimate_count("some text", 2, 10, service) is None


def test_clients_cached_per_service():
    created = []

    def factory(service):
        created.append(service)
        return object()

    adapter = InferenceAdapter(client_factory=factory)
    a = ServiceConfig(provider="openai", base_url="http://a/v1", api_key="k")
    b = ServiceConfig(provider="openai", base_url="http://b/v1", api_key="k")

    assert adapter.get_client(a) is adapter.get_client(a.model_copy())
    adapter.get_client(b)
    assert len(created) == 2
