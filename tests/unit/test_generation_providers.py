"""Unit tests for the generation provider adapters.

The SDK clients are patched with AsyncMocks; no network calls are made.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from studyrag.config.settings import Settings
from studyrag.providers.generation.anthropic_provider import AnthropicGenerationProvider
from studyrag.providers.generation.ollama_provider import OllamaGenerationProvider
from studyrag.providers.generation.openai_provider import OpenAIGenerationProvider
from studyrag.utils.errors import GenerationFailure

_OPENAI_CLIENT = "studyrag.providers.generation.openai_provider.openai.AsyncOpenAI"
_OLLAMA_CLIENT = _OPENAI_CLIENT
_ANTHROPIC_CLIENT = "studyrag.providers.generation.anthropic_provider.anthropic.AsyncAnthropic"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        anthropic_api_key="ak-test",
        ollama_base_url="http://localhost:11434",
    )


def _chat_response(content: str | None) -> MagicMock:
    mock_choice = MagicMock()
    mock_choice.message.content = content
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage.total_tokens = 12
    return mock_response


def _anthropic_response(blocks: list[SimpleNamespace]) -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = blocks
    mock_response.usage.input_tokens = 5
    mock_response.usage.output_tokens = 3
    return mock_response


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAIGenerationProvider:
    @pytest.mark.asyncio
    async def test_generate_returns_content(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("Answer."))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIGenerationProvider(settings)
            result = await provider.generate("prompt", temperature=0.1, max_tokens=50)

        assert result == "Answer."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(None))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIGenerationProvider(settings)
            with pytest.raises(GenerationFailure):
                await provider.generate("prompt")

    @pytest.mark.asyncio
    async def test_api_error_maps_to_generation_failure(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="quota exceeded", request=MagicMock(), body=None)
        )

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIGenerationProvider(settings)
            with pytest.raises(GenerationFailure) as exc_info:
                await provider.generate("prompt")

        assert exc_info.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_validate_credentials_lists_models(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=[])

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIGenerationProvider(settings)
            assert await provider.validate_credentials() is True

        mock_client.models.list.assert_awaited_once()

    def test_compatible_label_and_base_url(self) -> None:
        settings = Settings(
            _env_file=None, openai_api_key="k", openai_base_url="https://example.test/v1"
        )
        with patch(_OPENAI_CLIENT) as mock_cls:
            provider = OpenAIGenerationProvider(settings)

        assert provider.get_provider_name() == "openai-compatible"
        assert mock_cls.call_args.kwargs["base_url"] == "https://example.test/v1"

    def test_unavailable_without_key(self) -> None:
        with patch(_OPENAI_CLIENT):
            provider = OpenAIGenerationProvider(Settings(_env_file=None, openai_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_missing_key_builds_no_client(self) -> None:
        with patch(_OPENAI_CLIENT) as mock_cls:
            provider = OpenAIGenerationProvider(Settings(_env_file=None, openai_api_key=""))

        mock_cls.assert_not_called()
        assert await provider.validate_credentials() is False
        with pytest.raises(GenerationFailure, match="no API key"):
            await provider.generate("prompt")


# ======================================================================
# Anthropic
# ======================================================================


class TestAnthropicGenerationProvider:
    @pytest.mark.asyncio
    async def test_joins_text_blocks(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            return_value=_anthropic_response(
                [
                    SimpleNamespace(type="text", text="First."),
                    SimpleNamespace(type="tool_use", text=""),
                    SimpleNamespace(type="text", text="Second."),
                ]
            )
        )

        with patch(_ANTHROPIC_CLIENT, return_value=mock_client):
            provider = AnthropicGenerationProvider(settings)
            result = await provider.generate("prompt")

        assert result == "First.\nSecond."
        assert mock_client.messages.create.call_args.kwargs["model"] == "claude-sonnet-4-20250514"

    @pytest.mark.asyncio
    async def test_no_text_raises(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response([]))

        with patch(_ANTHROPIC_CLIENT, return_value=mock_client):
            provider = AnthropicGenerationProvider(settings)
            with pytest.raises(GenerationFailure):
                await provider.generate("prompt")

    @pytest.mark.asyncio
    async def test_api_error_maps_to_generation_failure(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="overloaded", request=MagicMock(), body=None)
        )

        with patch(_ANTHROPIC_CLIENT, return_value=mock_client):
            provider = AnthropicGenerationProvider(settings)
            with pytest.raises(GenerationFailure) as exc_info:
                await provider.generate("prompt")

        assert exc_info.value.provider_name == "anthropic"

    def test_availability(self, settings) -> None:
        with patch(_ANTHROPIC_CLIENT):
            configured = AnthropicGenerationProvider(settings)
            missing = AnthropicGenerationProvider(Settings(_env_file=None, anthropic_api_key=""))
        assert configured.is_available() is True
        assert missing.is_available() is False


# ======================================================================
# Ollama
# ======================================================================


class TestOllamaGenerationProvider:
    @pytest.mark.asyncio
    async def test_generate_uses_local_v1_endpoint(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("Local answer."))

        with patch(_OLLAMA_CLIENT, return_value=mock_client) as mock_cls:
            provider = OllamaGenerationProvider(settings)
            result = await provider.generate("prompt")

        assert result == "Local answer."
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"
        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "llama3.1"

    @pytest.mark.asyncio
    async def test_validate_credentials_checks_tags_endpoint(self, settings) -> None:
        fake_http = MagicMock()
        fake_http.__aenter__ = AsyncMock(return_value=fake_http)
        fake_http.__aexit__ = AsyncMock(return_value=False)
        fake_http.get = AsyncMock(return_value=SimpleNamespace(status_code=200))

        with patch(_OLLAMA_CLIENT), patch(
            "studyrag.providers.generation.ollama_provider.httpx.AsyncClient",
            return_value=fake_http,
        ):
            provider = OllamaGenerationProvider(settings)
            assert await provider.validate_credentials() is True

        fake_http.get.assert_awaited_once_with("http://localhost:11434/api/tags")

    @pytest.mark.asyncio
    async def test_validate_credentials_unreachable(self, settings) -> None:
        fake_http = MagicMock()
        fake_http.__aenter__ = AsyncMock(return_value=fake_http)
        fake_http.__aexit__ = AsyncMock(return_value=False)
        fake_http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch(_OLLAMA_CLIENT), patch(
            "studyrag.providers.generation.ollama_provider.httpx.AsyncClient",
            return_value=fake_http,
        ):
            provider = OllamaGenerationProvider(settings)
            assert await provider.validate_credentials() is False

    def test_provider_name(self, settings) -> None:
        with patch(_OLLAMA_CLIENT):
            assert OllamaGenerationProvider(settings).get_provider_name() == "ollama"

    @pytest.mark.asyncio
    async def test_api_error_reports_ollama(self, settings) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="model not found", request=MagicMock(), body=None)
        )

        with patch(_OLLAMA_CLIENT, return_value=mock_client):
            provider = OllamaGenerationProvider(settings)
            with pytest.raises(GenerationFailure, match="ollama API error") as exc_info:
                await provider.generate("prompt")

        assert exc_info.value.provider_name == "ollama"
