"""Answer generation over the OpenAI chat-completions API.

Any host that speaks the same API works by setting ``OPENAI_BASE_URL``
(Gemini's OpenAI endpoint, Groq, TogetherAI, vLLM ...); the provider then
reports itself as ``openai-compatible``.  :class:`OllamaGenerationProvider`
reuses this class against a local server.
"""

from __future__ import annotations

from typing import NamedTuple

import openai
import structlog

from studyrag.config.settings import Settings
from studyrag.interfaces.generation_provider import IGenerationProvider
from studyrag.utils.errors import GenerationFailure

logger = structlog.get_logger(logger_name=__name__)


class ChatEndpoint(NamedTuple):
    api_key: str
    base_url: str | None
    model: str
    label: str


class OpenAIGenerationProvider(IGenerationProvider):
    """Single-turn chat completion; the whole RAG prompt is one user message."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        endpoint = self._connection(settings)
        self._api_key = endpoint.api_key
        self._base_url = endpoint.base_url
        self._text_model = endpoint.model
        self._provider_label = endpoint.label
        # The SDK refuses an empty key at construction, so no key means no client.
        # Client deadline trails the pipeline's own so asyncio.wait_for fires first.
        self._client: openai.AsyncOpenAI | None = None
        if self._api_key:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=openai.Timeout(settings.generation_timeout_seconds + 5.0, connect=5.0),
            )

    @staticmethod
    def _connection(settings: Settings) -> ChatEndpoint:
        return ChatEndpoint(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            model=settings.openai_text_model or "gpt-4o-mini",
            label="openai-compatible" if settings.openai_base_url else "openai",
        )

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> str:
        if self._client is None:
            raise GenerationFailure(
                message=f"{self._provider_label} has no API key configured",
                provider_name=self.get_provider_name(),
            )
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise GenerationFailure(
                message=f"{self._provider_label} request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise GenerationFailure(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationFailure(
                message=f"{self._provider_label} returned an empty answer",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "chat_completion",
            provider=self._provider_label,
            model=self._text_model,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Configured means a key is present; the key is not verified."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models to confirm the API key is accepted, at no inference cost."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
        except openai.APIError:
            return False
        return True

    def get_provider_name(self) -> str:
        return self._provider_label
