"""Abstract base class for LLM providers."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from qaptain.errors import QaptainError

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = "You are a helpful AI assistant designed to output JSON."


class ProviderTransportError(QaptainError):
    """Transient failure talking to the model (connection, timeout, rate limit, 5xx)."""


class ProviderResponseError(QaptainError):
    """The model answered, but not with usable output."""


def parse_json_response(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model reply as a JSON object.

    Markdown code fences around the JSON are tolerated.

    Raises:
        ProviderResponseError: If the reply is empty or not a JSON object
    """
    if not text or not text.strip():
        raise ProviderResponseError("AI returned an empty response")

    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif text.startswith("```"):
        text = text.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(f"Unparsable model output: {text[:500]}")
        raise ProviderResponseError("AI returned invalid JSON", details=str(e))

    if not isinstance(data, dict):
        raise ProviderResponseError("AI returned JSON that is not an object", details=type(data).__name__)
    return data


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name = "abstract"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize LLM provider.

        Args:
            config: Provider-specific configuration
        """
        self.config = config
        self.enabled = config.get("enabled", False)
        self.model_name = config.get("model_name")
        self.temperature = config.get("temperature", 0.7)
        self.max_tokens = config.get("max_tokens", 4000)

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False
    ) -> str:
        """
        Generate text from prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens to generate
            json_mode: Ask the model for a JSON object

        Returns:
            Generated text

        Raises:
            ProviderTransportError: On transient transport failures
            ProviderResponseError: On any other failed call
        """

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = JSON_SYSTEM_PROMPT,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate and parse a JSON object."""
        text = await self.generate_text(
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True
        )
        return parse_json_response(text)

    @abstractmethod
    async def is_available(self) -> bool:
        """
        Check if provider is available and ready.

        Returns:
            True if provider is available
        """

    async def close(self):
        """Release client resources."""
