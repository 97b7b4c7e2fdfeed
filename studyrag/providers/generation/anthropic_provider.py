"""Answer generation with Claude via the Anthropic Messages API.

First choice when ``ANTHROPIC_API_KEY`` is set.  A reply can mix several
content blocks; only text blocks make it into the answer.
"""

from __future__ import annotations

import anthropic
import structlog

from studyrag.config.settings import Settings
from studyrag.interfaces.generation_provider import IGenerationProvider
from studyrag.utils.errors import GenerationFailure

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicGenerationProvider(IGenerationProvider):
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.anthropic_api_key
        self._model = settings.anthropic_model or _DEFAULT_MODEL
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=settings.generation_timeout_seconds + 5.0,
        )

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> str:
        try:
            reply = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as exc:
            raise GenerationFailure(
                message="anthropic request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIError as exc:
            raise GenerationFailure(
                message=f"anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        answer = "\n".join(block.text for block in reply.content if block.type == "text")
        if not answer.strip():
            raise GenerationFailure(
                message="anthropic reply contained no text",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "chat_completion",
            provider="anthropic",
            model=self._model,
            input_tokens=reply.usage.input_tokens,
            output_tokens=reply.usage.output_tokens,
        )
        return answer

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """Fetch one model entry; an accepted key costs no tokens."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list(limit=1)
        except anthropic.APIError:
            return False
        return True

    def get_provider_name(self) -> str:
        return "anthropic"
