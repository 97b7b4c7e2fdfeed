"""Public interface definitions for the three external capabilities.

Every model or database the pipelines depend on is reached exclusively
through the abstract base classes defined here.  Concrete adapters live in
``studyrag/providers/`` and are constructed once in ``studyrag/main.py``,
then injected into the services.  Unit tests inject fakes instead.

    Interface              ->  Concrete implementations
    ---------------------------------------------------------------
    IEmbeddingProvider     ->  SentenceTransformerEmbeddingProvider,
                               FastEmbedEmbeddingProvider,
                               OpenAIEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider
    IGenerationProvider    ->  OpenAIGenerationProvider,
                               AnthropicGenerationProvider,
                               OllamaGenerationProvider
"""

from studyrag.interfaces.embedding_provider import IEmbeddingProvider
from studyrag.interfaces.generation_provider import IGenerationProvider
from studyrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IGenerationProvider",
    "IVectorStoreProvider",
]
