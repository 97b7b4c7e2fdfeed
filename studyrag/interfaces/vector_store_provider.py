"""Abstract base class for vector-store service providers.

Defines the contract for storing, searching, and deleting embedded chunks.
Implementations may wrap ChromaDB (embedded or server), Qdrant, Pinecone,
or any other vector database that supports equality filters on metadata.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from studyrag.models.filters import Predicate
from studyrag.models.rag import RetrievedChunk, VectorRecord


# Concrete implementation: ChromaDBProvider (studyrag/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG pipelines.

    One collection holds every owner's chunks.  Owner isolation therefore
    depends on the filter: :meth:`query` and :meth:`get_by_filter` must
    reject any filter that does not pin ``owner_id`` (see
    :meth:`~studyrag.models.filters.And.is_owner_scoped`).
    """

    @abstractmethod
    async def upsert(self, records: list[VectorRecord]) -> int:
        """Insert or overwrite *records* as one batch.

        Either every record is visible afterwards or none of the new ones
        is; a failure partway through must not leave a partial batch.

        Returns
        -------
        int
            The number of records written.

        Raises
        ------
        studyrag.utils.errors.VectorStoreFailure
            If the records carry embeddings of differing dimensions or of
            a dimension the store does not hold, or the write fails.
        """

    @abstractmethod
    async def query(
        self,
        embedding: list[float],
        k: int,
        where: Predicate,
    ) -> list[RetrievedChunk]:
        """Return up to *k* records matching *where*, most similar first.

        Raises
        ------
        studyrag.utils.errors.ValidationError
            If *where* is not scoped to an owner.
        studyrag.utils.errors.VectorStoreFailure
            If the query fails.
        """

    @abstractmethod
    async def get_by_filter(self, where: Predicate) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(id, metadata)`` for every record matching *where*.

        Raises
        ------
        studyrag.utils.errors.ValidationError
            If *where* is not scoped to an owner.
        studyrag.utils.errors.VectorStoreFailure
            If the read fails.
        """

    @abstractmethod
    async def delete_by_ids(self, ids: list[str]) -> None:
        """Remove the records with the given ids.

        Unknown ids are ignored; an empty list is a no-op.
        """

    @abstractmethod
    async def count(self, where: Predicate | None = None) -> int:
        """Return the number of stored records, optionally filtered."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
