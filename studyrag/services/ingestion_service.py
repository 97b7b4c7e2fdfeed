"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **chunk -> embed -> store**.

The :class:`IngestionService` coordinates three collaborators (chunker,
embedding provider, vector store) without any of them knowing about each
other.  All dependencies are injected via the constructor, so providers can
be swapped (e.g. sentence-transformers -> OpenAI) without touching this
class.

An ingest is all-or-nothing: every chunk is embedded before anything is
written, and the records go to the store in a single upsert.  A failed
embedding aborts the call with nothing stored.
"""

from __future__ import annotations

import asyncio
import functools
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from studyrag.models.filters import owner_scope, owner_source_scope
from studyrag.models.rag import (
    DOCUMENT_ID_KEY,
    INGESTED_AT_KEY,
    SOURCE_NAME_KEY,
    Chunk,
    DocumentHandle,
    IngestionResult,
    VectorRecord,
    make_chunk_id,
    make_document_id,
    mint_timestamp,
    timestamp_to_datetime,
)
from studyrag.services.chunker import TextChunker
from studyrag.utils.concurrency import call_with_timeout, throttled_gather
from studyrag.utils.errors import EmbeddingFailure, ValidationError
from studyrag.utils.text import is_blank

if TYPE_CHECKING:
    from studyrag.interfaces.embedding_provider import IEmbeddingProvider
    from studyrag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Turns ordered chunk strings into embedded, owner-tagged records.

    Parameters
    ----------
    embedding_provider:
        Must be the same instance the query service uses.
    vector_store:
        Destination for the embedded records.
    chunker:
        Used by :meth:`ingest_text`; defaults to 500/100 word windows.
    embedding_concurrency:
        Maximum number of chunk embeddings in flight at once.
    embedding_timeout:
        Seconds allowed per embedding call.
    max_retries:
        Extra attempts for an embedding call that timed out.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        chunker: TextChunker | None = None,
        embedding_concurrency: int = 4,
        embedding_timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff: float = 0.5,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._chunker = chunker or TextChunker()
        self._embedding_concurrency = max(1, embedding_concurrency)
        self._embedding_timeout = embedding_timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        owner_id: str,
        chunks: list[str],
        source_name: str,
        *,
        replace_existing: bool = False,
    ) -> IngestionResult:
        """Embed and store *chunks* as one document owned by *owner_id*.

        Parameters
        ----------
        owner_id:
            Already-authenticated owner of the document.
        chunks:
            Ordered chunk texts; position ``i`` becomes ``chunk_index`` ``i``.
        source_name:
            Display name of the source document (usually the file name).
        replace_existing:
            When ``True``, the owner's earlier chunks stored under the same
            *source_name* are removed once the new batch is stored.  By
            default repeated ingests of one name accumulate.

        Raises
        ------
        ValidationError
            If *owner_id* or *source_name* is blank or *chunks* is empty.
        EmbeddingFailure
            If any chunk cannot be embedded; ``chunk_index`` names the
            first failing position and nothing has been stored.
        VectorStoreFailure
            If the batch upsert fails; nothing from the batch is stored.
        """
        if is_blank(owner_id):
            raise ValidationError("owner_id must not be blank")
        if is_blank(source_name):
            raise ValidationError("source_name must not be blank")
        if not chunks:
            raise ValidationError(f"No text chunks to ingest for '{source_name}'")

        start_time = time.monotonic()
        timestamp = mint_timestamp()
        document_id = make_document_id(owner_id, timestamp)
        ingested_at = timestamp_to_datetime(timestamp)

        embeddings = await self._embed_all(chunks, source_name)

        total = len(chunks)
        records: list[VectorRecord] = []
        for index, (text, embedding) in enumerate(zip(chunks, embeddings, strict=True)):
            chunk_model = Chunk(
                text=text,
                index=index,
                total_chunks=total,
                owner_id=owner_id,
                source_name=source_name,
                ingested_at=ingested_at,
            )
            records.append(
                VectorRecord(
                    id=make_chunk_id(owner_id, timestamp, index),
                    embedding=embedding,
                    text=text,
                    metadata=chunk_model.to_metadata(document_id),
                )
            )

        stored = await self._vector_store.upsert(records)

        if replace_existing:
            await self._remove_previous_versions(owner_id, source_name, document_id)

        logger.info(
            "ingest_complete",
            owner_id=owner_id,
            source_name=source_name,
            document_id=document_id,
            chunks_created=stored,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        return IngestionResult(document_id=document_id, chunks_created=total)

    async def ingest_text(
        self,
        owner_id: str,
        text: str,
        source_name: str,
        *,
        replace_existing: bool = False,
    ) -> IngestionResult:
        """Chunk raw *text* with the configured chunker, then :meth:`ingest`.

        Raises :class:`ValidationError` if the text has no words.
        """
        chunks = self._chunker.chunk(text or "")
        if not chunks:
            raise ValidationError(f"No extractable text in '{source_name}'")
        return await self.ingest(owner_id, chunks, source_name, replace_existing=replace_existing)

    async def list_documents(self, owner_id: str) -> list[DocumentHandle]:
        """Return *owner_id*'s stored documents, newest first.

        Handles are rebuilt from chunk metadata; nothing else is persisted.
        """
        if is_blank(owner_id):
            raise ValidationError("owner_id must not be blank")

        matches = await self._vector_store.get_by_filter(owner_scope(owner_id))

        grouped: dict[str, dict[str, Any]] = {}
        for chunk_id, metadata in matches:
            document_id = str(metadata.get(DOCUMENT_ID_KEY) or chunk_id.rsplit("_chunk_", 1)[0])
            entry = grouped.setdefault(
                document_id,
                {
                    "count": 0,
                    "source_name": str(metadata.get(SOURCE_NAME_KEY, "")),
                    "ingested_at": _parse_iso(metadata.get(INGESTED_AT_KEY)),
                },
            )
            entry["count"] += 1

        handles = [
            DocumentHandle(
                document_id=document_id,
                chunk_count=entry["count"],
                source_name=entry["source_name"],
                ingested_at=entry["ingested_at"],
            )
            for document_id, entry in grouped.items()
        ]
        handles.sort(
            key=lambda h: (h.ingested_at.timestamp() if h.ingested_at else 0.0, h.document_id),
            reverse=True,
        )
        return handles

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_all(self, chunks: list[str], source_name: str) -> list[list[float]]:
        """Embed every chunk with bounded concurrency, preserving order.

        The first failing chunk cancels all later ones; the raised
        :class:`EmbeddingFailure` names the lowest failing index.
        """
        semaphore = asyncio.Semaphore(self._embedding_concurrency)
        try:
            return await throttled_gather(
                [functools.partial(self._embed_one, index, text) for index, text in enumerate(chunks)],
                semaphore=semaphore,
            )
        except EmbeddingFailure as exc:
            logger.error(
                "ingest_embedding_failed",
                source_name=source_name,
                chunk_index=exc.chunk_index,
                total_chunks=len(chunks),
                error=str(exc),
            )
            raise

    async def _embed_one(self, index: int, text: str) -> list[float]:
        provider_name = self._embedding_provider.get_provider_name()
        try:
            return await call_with_timeout(
                lambda: self._embedding_provider.embed_single(text),
                timeout=self._embedding_timeout,
                retries=self._max_retries,
                backoff=self._retry_backoff,
                operation="embed_chunk",
            )
        except TimeoutError as exc:
            raise EmbeddingFailure(
                message=f"Embedding chunk {index} timed out",
                provider_name=provider_name,
                chunk_index=index,
            ) from exc
        except EmbeddingFailure as exc:
            raise EmbeddingFailure(
                message=f"Embedding chunk {index} failed: {exc.message}",
                provider_name=exc.provider_name or provider_name,
                chunk_index=index,
            ) from exc
        except Exception as exc:
            raise EmbeddingFailure(
                message=f"Embedding chunk {index} failed: {exc}",
                provider_name=provider_name,
                chunk_index=index,
            ) from exc

    async def _remove_previous_versions(self, owner_id: str, source_name: str, keep_document_id: str) -> None:
        matches = await self._vector_store.get_by_filter(owner_source_scope(owner_id, source_name))
        stale_ids = [
            chunk_id
            for chunk_id, metadata in matches
            if metadata.get(DOCUMENT_ID_KEY) != keep_document_id
        ]
        if stale_ids:
            await self._vector_store.delete_by_ids(stale_ids)
        logger.info(
            "ingest_replaced_previous",
            owner_id=owner_id,
            source_name=source_name,
            removed_chunks=len(stale_ids),
        )


def _parse_iso(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None
