# tests/unit/conftest.py
"""
Shared fixtures: source pages and a scriptable fake inference adapter.

The fake adapter stands in for InferenceAdapter so the queue, orchestrator
and boundary can be tested without a service.
"""

import asyncio
import uuid

import pytest

from studyforge.config.schema import GenerationConfig, ServiceConfig
from studyforge.models.items import ClozeItem, Flashcard, TrueFalseItem
from studyforge.models.pages import ExtractionResult, PageMeta, SourcePage


def _make_item(kind: str, page_ids: list[str]):
    """A random, non-duplicate item of the given kind."""
    if kind == "cloze":
        return ClozeItem(
            sentence=f"The ____ of {uuid.uuid4().hex}", blanks=["term"], source_pages=page_ids
        )
    if kind == "truefalse":
        return TrueFalseItem(
            statements=[{"statement": f"S {uuid.uuid4().hex}", "isTrue": True}],
            source_pages=page_ids,
        )
    return Flashcard(
        question=f"Q {uuid.uuid4().hex}", answer=f"A {uuid.uuid4().hex}", source_pages=page_ids
    )


class FakeAdapter:
    """
    Scriptable stand-in for InferenceAdapter.

    Attributes:
        analyze_script: Per-call results for analyze(); exceptions are raised.
            When exhausted, a default ExtractionResult is returned.
        chunk_failures: Chunk indexes (1-based, per kind) whose generate() raises
        generate_delay: Seconds each generate() call takes
        healthy: health_check() result
        estimate_result: estimate_count() result (exception raised)
    """

    def __init__(self) -> None:
        self.analyze_script: list = []
        self.analyze_calls: list[str] = []
        self.generate_calls: list[tuple[list[str], str, int]] = []
        self.chunk_failures: dict[int, Exception] = {}
        self.generate_delay = 0.0
        self.healthy = True
        self.estimate_result: int | Exception | None = 10
        self.estimate_delay = 0.0
        self.estimate_calls: list[tuple[int, int]] = []
        self._chunk_counter: dict[str, int] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.analyze_delay = 0.01

    async def health_check(self, service):
        return self.healthy

    async def analyze(self, image_data, service):
        self.analyze_calls.append(image_data)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.analyze_delay)
            if self.analyze_script:
                result = self.analyze_script.pop(0)
                if isinstance(result, Exception):
                    raise result
                return result
            return ExtractionResult(text=f"Extracted text for {image_data}", page="1")
        finally:
            self.in_flight -= 1

    async def generate(self, chunk, kind, count, preferences, service):
        index = self._chunk_counter.get(kind, 0) + 1
        self._chunk_counter[kind] = index
        self.generate_calls.append((list(chunk.page_ids), kind, count))
        if self.generate_delay:
            await asyncio.sleep(self.generate_delay)
        if index in self.chunk_failures:
            raise self.chunk_failures[index]
        return [_make_item(kind, list(chunk.page_ids)) for _ in range(count)]

    async def estimate_count(self, sample_text, sample_pages, total_pages, service):
        self.estimate_calls.append((sample_pages, total_pages))
        if self.estimate_delay:
            await asyncio.sleep(self.estimate_delay)
        if isinstance(self.estimate_result, Exception):
            raise self.estimate_result
        return self.estimate_result


def make_pages(count: int, chars: int = 400) -> list[SourcePage]:
    return [
        SourcePage(
            id=f"p{i}",
            text=f"Page {i} " + "x" * chars,
            meta=PageMeta(page_number=str(i)),
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def service() -> ServiceConfig:
    return ServiceConfig(provider="openai", base_url="http://localhost:1234/v1", api_key="k")


@pytest.fixture
def pages() -> list[SourcePage]:
    """Three pages that each fill one chunk under `small_chunks`."""
    return make_pages(3)


@pytest.fixture
def small_chunks() -> GenerationConfig:
    """One ~100-token page per chunk, no health check retries or waits."""
    return GenerationConfig(max_tokens_per_chunk=100, tokens_per_char=0.25)


@pytest.fixture
def page_factory():
    return make_pages
