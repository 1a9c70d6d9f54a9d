# studyforge/llm/factory.py
"""Factory for creating the LLM client a ServiceConfig points at."""

from studyforge.config.schema import ServiceConfig

from .client import OllamaClient
from .openai_client import OpenAICompatibleClient


def create_llm_client(service: ServiceConfig) -> OllamaClient | OpenAICompatibleClient:
    """
    Create the appropriate LLM client based on service.provider.

    Args:
        service: Target service credentials

    Returns:
        OllamaClient for provider="ollama", OpenAICompatibleClient for
        provider="openai" and provider="azure"
    """
    if service.provider in ("openai", "azure"):
        return OpenAICompatibleClient(
            base_url=service.base_url,
            model=service.model,
            api_key=service.api_key,
            timeout=service.timeout,
            azure=service.provider == "azure",
            api_version=service.api_version,
        )
    return OllamaClient(
        base_url=service.base_url,
        model=service.model,
        timeout=service.timeout,
    )
