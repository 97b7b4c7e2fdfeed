"""ChromaDB vector store provider adapter.

Wraps a ChromaDB client to implement :class:`IVectorStoreProvider`.  By
default the collection lives on local disk (``chromadb.PersistentClient``);
when ``CHROMADB_HOST`` is set the adapter talks to a ``chroma run`` server
through ``chromadb.HttpClient`` instead.  Uses cosine distance for
similarity search.

ChromaDB's client is synchronous, so every call is pushed to a worker
thread with :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  ChromaDB's bundled
# PostHog client breaks against newer posthog releases ("capture() takes 1
# positional argument but 3 were given").
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from studyrag.interfaces.vector_store_provider import IVectorStoreProvider
from studyrag.models.filters import And, Equals, Predicate
from studyrag.models.rag import RetrievedChunk, VectorRecord
from studyrag.utils.errors import ConfigurationError, ValidationError, VectorStoreFailure

logger = structlog.get_logger(logger_name=__name__)

_PAGE_SIZE = 5000  # stays under SQLite's bind-parameter ceiling


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    studyrag always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "studyrag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by a single ChromaDB collection.

    Parameters
    ----------
    embedding_dimension:
        Dimension the configured embedding provider produces.  Checked
        against a stored vector at startup and against every upsert.
    persist_directory:
        On-disk location for the embedded client.
    collection_name:
        One collection holds every owner's chunks.
    host, port:
        When *host* is non-empty, connect to a ChromaDB server instead of
        opening a local directory.
    """

    def __init__(
        self,
        embedding_dimension: int | None = None,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "academic_documents",
        host: str = "",
        port: int = 8000,
    ) -> None:
        self._embedding_dimension = embedding_dimension
        self._collection_name = collection_name
        client_settings = chromadb.config.Settings(anonymized_telemetry=False)
        try:
            if host:
                self._client = chromadb.HttpClient(host=host, port=port, settings=client_settings)
            else:
                self._client = chromadb.PersistentClient(
                    path=persist_directory,
                    settings=client_settings,
                )
            # Newer ChromaDB versions refuse an embedding function that differs
            # from the one persisted with the collection; reopen without one.
            try:
                self._collection = self._client.get_or_create_collection(
                    name=collection_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                self._collection = self._client.get_or_create_collection(
                    name=collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"Could not open ChromaDB collection '{collection_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        self._validate_embedding_dimensions()
        logger.info(
            "chromadb_ready",
            collection=collection_name,
            mode="http" if host else "persistent",
        )

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self) -> None:
        """Verify the embedding dimension matches vectors already stored.

        A mismatch means every query would compare vectors from different
        spaces, so startup fails with :class:`ConfigurationError`.
        """
        if self._embedding_dimension is None:
            return
        try:
            collection_count = self._collection.count()
            if collection_count == 0:
                return
            sample = self._collection.peek(limit=1)
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return

        stored_dim = len(embeddings[0])
        if stored_dim != self._embedding_dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._embedding_dimension,
            )
            raise ConfigurationError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but the embedding provider "
                    f"produces {self._embedding_dimension}-dim vectors. "
                    f"Use the model the collection was built with, or a new collection."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "embedding_dimension_validated",
            dimension=stored_dim,
            stored_chunks=collection_count,
        )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[VectorRecord]) -> int:
        """Write *records* in one logical batch.

        If ChromaDB fails partway, ids that did not exist before the call
        are deleted and ids that did are rewritten from a snapshot taken
        beforehand, so the caller never observes a partial batch.

        Raises
        ------
        VectorStoreFailure
            On a dimension mismatch with the collection, or when ChromaDB
            rejects the write.
        """
        if not records:
            return 0

        dimensions = {len(r.embedding) for r in records}
        if len(dimensions) != 1:
            raise VectorStoreFailure(
                message=f"records carry embeddings of differing dimensions: {sorted(dimensions)}",
                provider_name=self.get_provider_name(),
            )
        dimension = dimensions.pop()
        if self._embedding_dimension is not None and dimension != self._embedding_dimension:
            raise VectorStoreFailure(
                message=(
                    f"embedding dimension {dimension} does not match collection "
                    f"'{self._collection_name}' dimension {self._embedding_dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

        await asyncio.to_thread(
            self._upsert_sync,
            [r.id for r in records],
            [r.embedding for r in records],
            [r.text for r in records],
            [dict(r.metadata) for r in records],
        )
        logger.info("chromadb_upsert", count=len(records))
        return len(records)

    def _upsert_sync(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        try:
            previous = self._snapshot(ids)
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"ChromaDB upsert pre-check failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            for start in range(0, len(ids), _PAGE_SIZE):
                end = start + _PAGE_SIZE
                self._collection.upsert(
                    ids=ids[start:end],
                    embeddings=embeddings[start:end],
                    documents=documents[start:end],
                    metadatas=metadatas[start:end],
                )
        except Exception as exc:
            self._compensate([i for i in ids if i not in previous], previous)
            raise VectorStoreFailure(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _snapshot(self, ids: list[str]) -> dict[str, tuple[list[float], str, dict[str, Any]]]:
        """Stored embedding, text and metadata for those of *ids* that exist."""
        rows: dict[str, tuple[list[float], str, dict[str, Any]]] = {}
        for start in range(0, len(ids), _PAGE_SIZE):
            page = self._collection.get(
                ids=ids[start : start + _PAGE_SIZE],
                include=["embeddings", "documents", "metadatas"],
            )
            for row_id, embedding, document, metadata in zip(
                page["ids"], page["embeddings"], page["documents"], page["metadatas"]
            ):
                rows[row_id] = ([float(x) for x in embedding], document, dict(metadata or {}))
        return rows

    def _compensate(
        self,
        new_ids: list[str],
        previous: dict[str, tuple[list[float], str, dict[str, Any]]],
    ) -> None:
        """Undo a failed upsert: drop new ids and rewrite overwritten rows."""
        try:
            if new_ids:
                self._delete_sync(new_ids)
            restore_ids = list(previous)
            for start in range(0, len(restore_ids), _PAGE_SIZE):
                page_ids = restore_ids[start : start + _PAGE_SIZE]
                self._collection.upsert(
                    ids=page_ids,
                    embeddings=[previous[i][0] for i in page_ids],
                    documents=[previous[i][1] for i in page_ids],
                    metadatas=[previous[i][2] for i in page_ids],
                )
            logger.warning("chromadb_upsert_rolled_back", removed=len(new_ids), restored=len(previous))
        except Exception as exc:
            logger.error(
                "chromadb_upsert_rollback_failed",
                pending_ids=len(new_ids) + len(previous),
                error=str(exc),
            )

    async def query(
        self,
        embedding: list[float],
        k: int,
        where: Predicate,
    ) -> list[RetrievedChunk]:
        """Return up to *k* of the owner's chunks, most similar first."""
        where_clause = self._translate_filter(self._require_owner_scope(where))
        if k <= 0:
            return []

        try:
            results = await asyncio.to_thread(self._query_sync, embedding, k, where_clause)
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results or not results.get("ids") or not results["ids"][0]:
            logger.info("chromadb_query", results_count=0)
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        retrieved = [
            RetrievedChunk(
                id=chunk_id,
                text=text or "",
                metadata=dict(meta or {}),
                similarity=max(0.0, min(1.0, 1.0 - distance)),
            )
            for chunk_id, text, meta, distance in zip(ids, documents, metadatas, distances, strict=True)
        ]
        retrieved.sort(key=lambda rc: rc.similarity, reverse=True)

        logger.info(
            "chromadb_query",
            results_count=len(retrieved),
            top_score=retrieved[0].similarity,
        )
        return retrieved[:k]

    def _query_sync(self, embedding: list[float], k: int, where_clause: dict[str, Any]) -> dict[str, Any]:
        if self._collection.count() == 0:
            return {}
        return self._collection.query(
            query_embeddings=[embedding],
            n_results=k,
            where=where_clause,
            include=["documents", "metadatas", "distances"],
        )

    async def get_by_filter(self, where: Predicate) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(id, metadata)`` pairs for every matching record.

        Paginates in 5K-row pages to avoid SQLite's bind-parameter limit.
        """
        where_clause = self._translate_filter(self._require_owner_scope(where))
        try:
            return await asyncio.to_thread(self._get_sync, where_clause)
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _get_sync(self, where_clause: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
        matches: list[tuple[str, dict[str, Any]]] = []
        offset = 0
        while True:
            page = self._collection.get(
                where=where_clause,
                include=["metadatas"],
                limit=_PAGE_SIZE,
                offset=offset,
            )
            page_ids = page["ids"] or []
            page_metas = page["metadatas"] or [{}] * len(page_ids)
            matches.extend((i, dict(m or {})) for i, m in zip(page_ids, page_metas, strict=True))
            if len(page_ids) < _PAGE_SIZE:
                return matches
            offset += _PAGE_SIZE

    async def delete_by_ids(self, ids: list[str]) -> None:
        """Delete the given ids.  Unknown ids are ignored."""
        if not ids:
            return
        try:
            await asyncio.to_thread(self._delete_sync, list(ids))
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete_by_ids", count=len(ids))

    def _delete_sync(self, ids: list[str]) -> None:
        for start in range(0, len(ids), _PAGE_SIZE):
            self._collection.delete(ids=ids[start : start + _PAGE_SIZE])

    async def count(self, where: Predicate | None = None) -> int:
        """Return the number of stored chunks, optionally filtered."""
        try:
            if where is None:
                return await asyncio.to_thread(self._collection.count)
            where_clause = self._translate_filter(where)
            return len(await asyncio.to_thread(self._get_sync, where_clause))
        except Exception as exc:
            raise VectorStoreFailure(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_owner_scope(self, where: Predicate) -> Predicate:
        if not isinstance(where, (Equals, And)) or not where.is_owner_scoped():
            raise ValidationError(
                message="Vector store reads must be scoped to an owner_id",
                provider_name=self.get_provider_name(),
            )
        return where

    @staticmethod
    def _translate_filter(where: Predicate) -> dict[str, Any]:
        """Translate a predicate into a ChromaDB ``where`` clause.

        ``Equals(f, v)`` becomes ``{"f": {"$eq": v}}``.  ChromaDB rejects
        ``$and`` with fewer than two clauses, so a single conjunct is
        returned bare.
        """
        clauses = [{p.field: {"$eq": p.value}} for p in where.conjuncts()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
