"""Shared pytest fixtures for the studyrag test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from studyrag.config.settings import Settings
from studyrag.interfaces.embedding_provider import IEmbeddingProvider
from studyrag.interfaces.generation_provider import IGenerationProvider
from studyrag.interfaces.vector_store_provider import IVectorStoreProvider
from studyrag.models.filters import Predicate
from studyrag.models.rag import RetrievedChunk, VectorRecord
from studyrag.services.chunker import TextChunker
from studyrag.services.deletion_service import DeletionService
from studyrag.services.ingestion_service import IngestionService
from studyrag.services.query_service import QueryService
from studyrag.utils.errors import EmbeddingFailure, ValidationError, VectorStoreFailure

# ---------------------------------------------------------------------------
# Embedding fixtures
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 32


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit vector by hashing *text*.

    Same text always produces the same vector, so a question identical to
    a stored chunk has similarity 1.0 with it.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Map bytes to [-1, 1) floats; avoids NaN/inf from raw float unpacking.
    values = [(b / 128.0) - 1.0 for b in struct.unpack(f"<{dim * 4}B", raw)[:dim]]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class HashEmbeddingProvider(IEmbeddingProvider):
    """Deterministic in-memory embedding provider.

    ``fail_on`` makes any text containing that marker raise
    :class:`EmbeddingFailure`; ``calls`` records every text embedded.
    """

    def __init__(self, dim: int = EMBEDDING_DIM, fail_on: str | None = None) -> None:
        self._dim = dim
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if not text.strip():
            raise EmbeddingFailure("Cannot embed empty text", provider_name="hash")
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingFailure("injected failure", provider_name="hash")
        return hash_to_vector(text, self._dim)

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "hash"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Vector store fixtures
# ---------------------------------------------------------------------------


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-backed vector store honouring the filter and atomicity contract.

    Set ``fail_upsert`` to make the next upserts raise
    :class:`VectorStoreFailure` without storing anything.
    """

    def __init__(self) -> None:
        self.records: dict[str, VectorRecord] = {}
        self.fail_upsert = False
        self.upsert_calls = 0

    async def upsert(self, records: list[VectorRecord]) -> int:
        self.upsert_calls += 1
        if len({len(r.embedding) for r in records}) > 1:
            raise VectorStoreFailure("records carry embeddings of differing dimensions", provider_name="memory")
        if self.fail_upsert:
            raise VectorStoreFailure("injected upsert failure", provider_name="memory")
        for record in records:
            self.records[record.id] = record
        return len(records)

    async def query(self, embedding: list[float], k: int, where: Predicate) -> list[RetrievedChunk]:
        self._require_scope(where)
        scored = []
        for record in self.records.values():
            if not where.matches(record.metadata):
                continue
            dot = sum(a * b for a, b in zip(embedding, record.embedding, strict=True))
            scored.append(
                RetrievedChunk(
                    id=record.id,
                    text=record.text,
                    metadata=dict(record.metadata),
                    similarity=max(0.0, min(1.0, dot)),
                )
            )
        scored.sort(key=lambda rc: rc.similarity, reverse=True)
        return scored[:k]

    async def get_by_filter(self, where: Predicate) -> list[tuple[str, dict[str, Any]]]:
        self._require_scope(where)
        return [(r.id, dict(r.metadata)) for r in self.records.values() if where.matches(r.metadata)]

    async def delete_by_ids(self, ids: list[str]) -> None:
        for chunk_id in ids:
            self.records.pop(chunk_id, None)

    async def count(self, where: Predicate | None = None) -> int:
        if where is None:
            return len(self.records)
        return sum(1 for r in self.records.values() if where.matches(r.metadata))

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    @staticmethod
    def _require_scope(where: Predicate) -> None:
        if not where.is_owner_scoped():
            raise ValidationError("unscoped filter", provider_name="memory")


@pytest.fixture
def embedding_provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def tmp_chromadb_dir(tmp_path: Path) -> str:
    """Return a fresh on-disk directory for a ChromaDB collection."""
    return str(tmp_path / "chromadb_test")


# ---------------------------------------------------------------------------
# Generation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_generation_provider() -> IGenerationProvider:
    """Mock IGenerationProvider returning a fixed answer.

    Override with ``mock_generation_provider.generate.side_effect = ...``.
    """
    mock = MagicMock(spec=IGenerationProvider)
    mock.get_provider_name.return_value = "mock-generation"
    mock.is_available.return_value = True
    mock.validate_credentials = AsyncMock(return_value=True)
    mock.generate = AsyncMock(return_value="Assignment 2 is due on March 5 (syllabus.txt).")
    return mock


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ingestion_service(embedding_provider, vector_store) -> IngestionService:
    return IngestionService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        chunker=TextChunker(chunk_size=50, overlap=10),
        embedding_timeout=5.0,
        max_retries=0,
    )


@pytest.fixture
def query_service(embedding_provider, vector_store, mock_generation_provider) -> QueryService:
    return QueryService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        generation_provider=mock_generation_provider,
        embedding_timeout=5.0,
        generation_timeout=5.0,
        max_retries=0,
    )


@pytest.fixture
def deletion_service(vector_store) -> DeletionService:
    return DeletionService(vector_store=vector_store)


@pytest.fixture
def test_settings(tmp_chromadb_dir: str) -> Settings:
    """Settings isolated from any local ``.env`` file."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        anthropic_api_key="",
        chromadb_persist_dir=tmp_chromadb_dir,
        chromadb_host="",
        app_env="test",
    )


@pytest.fixture
def sample_lecture_text() -> str:
    return (
        "Photosynthesis converts light energy into chemical energy stored in glucose. "
        "It takes place in the chloroplasts of plant cells, where chlorophyll absorbs "
        "mostly blue and red light. The light-dependent reactions occur in the thylakoid "
        "membranes and produce ATP and NADPH. The Calvin cycle, which runs in the stroma, "
        "uses that ATP and NADPH to fix carbon dioxide into three-carbon sugars. "
    ) * 4
