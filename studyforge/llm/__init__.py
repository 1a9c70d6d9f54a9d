# studyforge/llm/__init__.py
"""LLM integration module with Ollama and OpenAI-compatible clients and retry logic."""

from .client import OllamaClient
from .factory import create_llm_client
from .openai_client import OpenAICompatibleClient
from .retry import inference_retry, is_retryable

__all__ = [
    "OllamaClient",
    "OpenAICompatibleClient",
    "create_llm_client",
    "inference_retry",
    "is_retryable",
]
