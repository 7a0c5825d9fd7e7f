"""LLM providers backing the scenario oracle."""

from qaptain.services.ai.llm_provider import LLMProvider, ProviderResponseError, ProviderTransportError
from qaptain.services.ai.provider_factory import get_llm_provider, create_llm_provider, clear_provider_cache

__all__ = [
    "LLMProvider",
    "ProviderResponseError",
    "ProviderTransportError",
    "get_llm_provider",
    "create_llm_provider",
    "clear_provider_cache",
]
