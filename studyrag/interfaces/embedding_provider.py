"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-length unit vectors.
Implementations may wrap a local sentence-transformers model, an ONNX model
via fastembed, or an OpenAI-compatible embeddings API.  The same provider
instance must serve both ingestion and querying so that questions and
chunks live in one embedding space.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   SentenceTransformerEmbeddingProvider -- all-MiniLM-L6-v2 (local, PyTorch)
#   FastEmbedEmbeddingProvider           -- ONNX runtime, no PyTorch
#   OpenAIEmbeddingProvider              -- OpenAI-compatible embeddings API
# Located in: studyrag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipelines.

    Every returned vector has length :meth:`get_dimension` and unit L2 norm,
    so cosine similarity reduces to a dot product.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        studyrag.utils.errors.EmbeddingFailure
            If any text is blank, or the model cannot be loaded or invoked.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Raises
        ------
        studyrag.utils.errors.EmbeddingFailure
            If *text* is blank after whitespace normalisation, or the model
            cannot be loaded or invoked.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the lifetime of the provider instance; must match the
        dimension of vectors already stored in the collection.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sentence_transformer_all-MiniLM-L6-v2"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is installed/configured.

        Must not load the model or generate an embedding.
        """
