"""Embedding provider implementations.

Embeddings convert text into unit vectors that capture semantic meaning.
These vectors are stored in ChromaDB and used for similarity search.

Three implementations of IEmbeddingProvider:
    1. SentenceTransformerEmbeddingProvider -- PyTorch-based, local.
       Default model all-MiniLM-L6-v2 (384 dims).
    2. FastEmbedEmbeddingProvider -- ONNX-based, no PyTorch needed.
       Same default model and vector space.
    3. OpenAIEmbeddingProvider -- OpenAI-compatible embeddings API.
       Requires an API key.

The two local providers share LocalModelEmbeddingProvider and import their libraries
lazily, so this package imports cleanly without the ``local`` extra.
"""

from studyrag.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from studyrag.providers.embedding.local_model_provider import LocalModelEmbeddingProvider
from studyrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from studyrag.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "FastEmbedEmbeddingProvider",
    "LocalModelEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
]
