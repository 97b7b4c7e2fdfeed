"""Generation provider implementations.

Selection order in ``studyrag/main.py``: Anthropic -> OpenAI -> Ollama,
the first with credentials configured wins.
"""

from studyrag.providers.generation.anthropic_provider import AnthropicGenerationProvider
from studyrag.providers.generation.ollama_provider import OllamaGenerationProvider
from studyrag.providers.generation.openai_provider import OpenAIGenerationProvider

__all__ = [
    "AnthropicGenerationProvider",
    "OllamaGenerationProvider",
    "OpenAIGenerationProvider",
]
