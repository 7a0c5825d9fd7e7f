"""OpenAI LLM provider for cloud-based model inference."""

import logging
from typing import Any, Dict, Optional

import openai

from qaptain.services.ai.llm_provider import LLMProvider, ProviderResponseError, ProviderTransportError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    openai.APIConnectionError,  # includes APITimeoutError
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIProvider(LLMProvider):
    """OpenAI provider for GPT models (or any OpenAI-compatible endpoint)."""

    name = "openai"

    def __init__(self, config: Dict[str, Any], client: Optional[openai.AsyncOpenAI] = None):
        super().__init__(config)

        self.api_key = config.get("api_key")
        if not self.api_key and client is None:
            raise ValueError("OpenAI API key is required")

        self.model_name = config.get("model_name") or "gpt-4-turbo"
        self.timeout = config.get("timeout", 60)

        # The engine owns retries; the client must not retry on its own
        self.client = client or openai.AsyncOpenAI(
            api_key=self.api_key,
            base_url=config.get("base_url") or None,
            timeout=self.timeout,
            max_retries=0
        )

    async def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False
    ) -> str:
        """Generate text using OpenAI API."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model_name,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except TRANSIENT_ERRORS as e:
            logger.warning(f"OpenAI transient error: {type(e).__name__}: {e}")
            raise ProviderTransportError("OpenAI API unavailable", details=str(e))
        except openai.OpenAIError as e:
            logger.error(f"OpenAI generation error: {e}")
            raise ProviderResponseError("OpenAI API error", details=str(e))

        if not response.choices:
            raise ProviderResponseError("OpenAI returned no choices")
        return response.choices[0].message.content or ""

    async def is_available(self) -> bool:
        """Check if OpenAI is available."""
        try:
            await self.client.models.list()
            return True
        except openai.OpenAIError as e:
            logger.debug(f"OpenAI availability check failed: {e}")
            return False

    async def close(self):
        await self.client.close()
