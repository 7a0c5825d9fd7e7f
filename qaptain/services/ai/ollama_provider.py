"""Ollama provider: a locally hosted model as the scenario oracle."""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import aiohttp

from qaptain.services.ai.llm_provider import LLMProvider, ProviderResponseError, ProviderTransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3"
AVAILABILITY_TIMEOUT_SECONDS = 5


class OllamaProvider(LLMProvider):
    """Talks to ``/api/generate`` without streaming."""

    name = "ollama"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.base_url = config.get("base_url") or DEFAULT_BASE_URL
        self.model_name = config.get("model_name") or DEFAULT_MODEL
        self.timeout = config.get("timeout", 60)
        self._session: Optional[aiohttp.ClientSession] = None

    def endpoint(self, path: str) -> str:
        return urljoin(self.base_url, path)

    async def _client(self) -> aiohttp.ClientSession:
        # Recreated after close()
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    def build_payload(
        self,
        prompt: str,
        system_prompt: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
        json_mode: bool
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature if temperature is None else temperature,
                "num_predict": max_tokens or self.max_tokens,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt
        if json_mode:
            # Ollama constrains decoding to valid JSON
            payload["format"] = "json"
        return payload

    async def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False
    ) -> str:
        payload = self.build_payload(prompt, system_prompt, temperature, max_tokens, json_mode)
        session = await self._client()

        try:
            async with session.post(self.endpoint("/api/generate"), json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    error_class = ProviderTransportError if response.status >= 500 else ProviderResponseError
                    logger.warning(f"Ollama answered {response.status}: {body[:200]}")
                    raise error_class(f"Ollama API error {response.status}", details=body)
                result = await response.json()
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise ProviderTransportError("Failed to connect to Ollama", details=str(e) or type(e).__name__)
        except aiohttp.ClientError as e:
            raise ProviderResponseError("Ollama request failed", details=str(e))

        return result.get("response", "")

    async def is_available(self) -> bool:
        try:
            session = await self._client()
            async with session.get(
                self.endpoint("/api/tags"),
                timeout=aiohttp.ClientTimeout(total=AVAILABILITY_TIMEOUT_SECONDS)
            ) as response:
                return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Ollama not reachable at {self.base_url}: {e}")
            return False

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
