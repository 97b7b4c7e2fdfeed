"""RAG data models for the studyrag knowledge base.

Defines Pydantic v2 models for chunks, stored vector records, retrieval
results, and the result objects returned by the three pipelines.  All
models use frozen config to enforce immutability.

How the pieces fit together:

    1. CHUNKING: a document's text is split into overlapping word windows.
    2. EMBEDDING: each window becomes a unit-length vector.
    3. STORAGE: each window is stored as a :class:`VectorRecord` whose id is
       a :func:`make_chunk_id` and whose metadata carries the owner and the
       source name.
    4. RETRIEVAL: a question's vector is matched against the owner's
       records and comes back as :class:`RetrievedChunk` objects.
    5. GENERATION: the retrieved text grounds the answer in a
       :class:`QueryResult`.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Metadata keys every stored record carries.
OWNER_ID_KEY = "owner_id"
SOURCE_NAME_KEY = "source_name"
CHUNK_INDEX_KEY = "chunk_index"
TOTAL_CHUNKS_KEY = "total_chunks"
INGESTED_AT_KEY = "ingested_at"
DOCUMENT_ID_KEY = "document_id"

_timestamp_lock = threading.Lock()
_last_timestamp = 0


def mint_timestamp() -> int:
    """Return the current epoch time in milliseconds, strictly increasing.

    Two ingests for the same owner within one millisecond would otherwise
    mint the same document id and overwrite each other's chunks.
    """
    global _last_timestamp
    with _timestamp_lock:
        now = int(time.time() * 1000)
        _last_timestamp = max(now, _last_timestamp + 1)
        return _last_timestamp


def make_document_id(owner_id: str, timestamp: int) -> str:
    """Build the document id shared by every chunk of one ingest."""
    return f"{owner_id}_{timestamp}"


def make_chunk_id(owner_id: str, timestamp: int, index: int) -> str:
    """Build a chunk id from (owner, ingest timestamp, chunk position)."""
    return f"{make_document_id(owner_id, timestamp)}_chunk_{index}"


# ---------------------------------------------------------------------------
# Chunk -- one word window of an ingested document.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A contiguous word window of source text, tagged with its provenance."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The chunk's textual content.")
    index: int = Field(ge=0, description="0-based position within its document.")
    total_chunks: int = Field(gt=0, description="Number of chunks in the document.")
    owner_id: str = Field(min_length=1, description="Owner (tenant) of the document.")
    source_name: str = Field(min_length=1, description="Name of the source document.")
    ingested_at: datetime = Field(description="UTC time the document was ingested.")

    @model_validator(mode="after")
    def _index_within_document(self) -> Chunk:
        if self.index >= self.total_chunks:
            raise ValueError(
                f"chunk index {self.index} out of range for {self.total_chunks} chunks"
            )
        return self

    def to_metadata(self, document_id: str) -> dict[str, str | int]:
        """Return the flat metadata dict stored alongside this chunk."""
        return {
            OWNER_ID_KEY: self.owner_id,
            SOURCE_NAME_KEY: self.source_name,
            CHUNK_INDEX_KEY: self.index,
            TOTAL_CHUNKS_KEY: self.total_chunks,
            INGESTED_AT_KEY: self.ingested_at.isoformat(),
            DOCUMENT_ID_KEY: document_id,
        }


# ---------------------------------------------------------------------------
# VectorRecord -- the unit the vector store persists.
# ---------------------------------------------------------------------------
class VectorRecord(BaseModel):
    """An embedded chunk as written to the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Chunk id (see make_chunk_id).")
    embedding: list[float] = Field(min_length=1, description="Unit-length embedding.")
    text: str = Field(description="Chunk text.")
    metadata: dict[str, str | int | float | bool] = Field(
        description="Owner, source name, chunk index and ingest time."
    )

    @model_validator(mode="after")
    def _scoping_keys_present(self) -> VectorRecord:
        for key in (OWNER_ID_KEY, SOURCE_NAME_KEY):
            if not self.metadata.get(key):
                raise ValueError(f"vector record {self.id!r} is missing metadata key {key!r}")
        return self


# ---------------------------------------------------------------------------
# RetrievedChunk -- a search hit.
# ---------------------------------------------------------------------------
class RetrievedChunk(BaseModel):
    """A stored chunk returned by a similarity query, with its score."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Chunk id, when the store returns it.")
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    similarity: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Cosine similarity between the query and this chunk.",
    )

    @property
    def source_name(self) -> str:
        return str(self.metadata.get(SOURCE_NAME_KEY, ""))


# ---------------------------------------------------------------------------
# Pipeline results
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one ingest call."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunks_created: int = Field(default=0, ge=0)


class DocumentHandle(BaseModel):
    """The chunks of one ingest, grouped by their shared document id.

    Not persisted on its own; rebuilt from stored chunk metadata.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_count: int = Field(ge=0)
    source_name: str = ""
    ingested_at: datetime | None = None


class QueryResult(BaseModel):
    """Answer to one question, with the sources it was grounded in."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[str] = Field(default_factory=list)
    chunk_count: int = Field(default=0, ge=0)
    degraded: bool = Field(
        default=False,
        description="True when generation failed and the answer is built from excerpts.",
    )

    def to_chat_reply(self) -> str:
        """Return the answer with a trailing source list for chat display."""
        if not self.sources:
            return self.answer
        return f"{self.answer}\n\n📚 Sources: {', '.join(self.sources)}"


def timestamp_to_datetime(timestamp: int) -> datetime:
    """Convert a minted millisecond timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
