"""Selects the scenario oracle backend from configuration."""

import logging
from typing import Any, Dict, Optional, Tuple, Type

from qaptain.services.ai.llm_provider import LLMProvider
from qaptain.services.ai.ollama_provider import OllamaProvider
from qaptain.services.ai.openai_provider import OpenAIProvider
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    OllamaProvider.name: OllamaProvider,
}

# One provider (and its HTTP client) per backend/model/endpoint
_providers: Dict[Tuple[str, str, str], LLMProvider] = {}


def create_llm_provider(config: Dict[str, Any]) -> Optional[LLMProvider]:
    """
    Provider for a configuration, reusing an earlier instance when possible.

    Args:
        config: Output of ``Settings.llm_config()`` or an equivalent dict

    Returns:
        LLMProvider, or None when the oracle is disabled or cannot be built
        (callers turn None into a GenerationError at request time)
    """
    kind = config.get("provider") or "none"
    if not config.get("enabled", False) or kind == "none":
        logger.info("Scenario oracle disabled")
        return None

    provider_class = PROVIDERS.get(kind)
    if provider_class is None:
        logger.warning(f"Unknown LLM provider '{kind}', expected one of {', '.join(PROVIDERS)}")
        return None

    key = (kind, config.get("model_name") or "", config.get("base_url") or "")
    if key not in _providers:
        try:
            _providers[key] = provider_class(config)
        except ValueError as e:
            logger.error(f"Cannot build {kind} oracle: {e}")
            return None
        logger.info(f"Scenario oracle: {kind} ({_providers[key].model_name})")
    return _providers[key]


def get_llm_provider(config: Optional[Dict[str, Any]] = None) -> Optional[LLMProvider]:
    return create_llm_provider(config if config is not None else settings.llm_config())


def clear_provider_cache():
    _providers.clear()


async def close_providers():
    """Close the HTTP clients of every cached provider (application shutdown)."""
    for provider in list(_providers.values()):
        await provider.close()
    _providers.clear()
