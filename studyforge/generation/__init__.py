# studyforge/generation/__init__.py
"""Study item generation: chunking, kinds, deduplication and orchestration."""

from studyforge.generation.chunker import ContentChunk, chunk_pages
from studyforge.generation.dedupe import dedupe, levenshtein, similarity
from studyforge.generation.kinds import KIND_REGISTRY, ItemKind, get_kind
from studyforge.generation.orchestrator import GenerationOrchestrator, finalize_items

__all__ = [
    "ContentChunk",
    "chunk_pages",
    "dedupe",
    "levenshtein",
    "similarity",
    "KIND_REGISTRY",
    "ItemKind",
    "get_kind",
    "GenerationOrchestrator",
    "finalize_items",
]
