"""Abstract base class for text-generation service providers.

Defines the contract for any large-language-model backend that turns a
grounding prompt into an answer.  Implementations may wrap an
OpenAI-compatible API (OpenAI, Gemini, TogetherAI, Groq), the Anthropic
Messages API, or a local Ollama server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAIGenerationProvider, AnthropicGenerationProvider,
# OllamaGenerationProvider.  Located in: studyrag/providers/generation/
class IGenerationProvider(ABC):
    """Contract for text-generation services used by the query pipeline."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> str:
        """Generate text for *prompt*.

        Parameters
        ----------
        prompt:
            The full prompt, instructions and context included.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.  Never empty.

        Raises
        ------
        studyrag.utils.errors.GenerationFailure
            If the API call fails or returns no text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"`` or ``"ollama"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials/URL are configured (no network call)."""

    async def validate_credentials(self) -> bool:
        """Make a cheap network call to confirm the backend accepts requests.

        Defaults to :meth:`is_available`; adapters override it with a real
        probe (model listing, server health endpoint).
        """
        return self.is_available()
