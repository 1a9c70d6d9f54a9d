# studyforge/inference/__init__.py
"""Inference adapter, structured output parsing and regex extraction fallback."""

from .adapter import EstimateResponse, InferenceAdapter
from .extraction import extract_from_text
from .parsing import ItemBatchPolicy, ParseOutcome, StructuredOutputPolicy, extract_json

__all__ = [
    "InferenceAdapter",
    "EstimateResponse",
    "StructuredOutputPolicy",
    "ItemBatchPolicy",
    "ParseOutcome",
    "extract_json",
    "extract_from_text",
]
