"""Offline answer generation through a local Ollama server.

Ollama serves an OpenAI-compatible API under ``/v1``, so generation is
inherited from :class:`OpenAIGenerationProvider`; only the endpoint and
the health probe differ.

Setup: install Ollama, ``ollama pull llama3.1``, and set
``OLLAMA_BASE_URL=http://localhost:11434``.
"""

from __future__ import annotations

import httpx

from studyrag.config.settings import Settings
from studyrag.providers.generation.openai_provider import ChatEndpoint, OpenAIGenerationProvider


class OllamaGenerationProvider(OpenAIGenerationProvider):
    @staticmethod
    def _connection(settings: Settings) -> ChatEndpoint:
        # The SDK insists on a key; Ollama ignores it.
        return ChatEndpoint(
            api_key="ollama",
            base_url=f"{settings.ollama_base_url.rstrip('/')}/v1" if settings.ollama_base_url else None,
            model=settings.ollama_model or "llama3.1",
            label="ollama",
        )

    @property
    def _server_url(self) -> str:
        return self._settings.ollama_base_url.rstrip("/")

    def is_available(self) -> bool:
        return bool(self._settings.ollama_base_url)

    async def validate_credentials(self) -> bool:
        """Probe the native ``/api/tags`` route, which lists models without loading one."""
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._server_url}/api/tags")
        except httpx.HTTPError:
            return False
        return response.status_code == 200
