"""Unit tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from studyrag.utils.errors import (
    ConfigurationError,
    EmbeddingFailure,
    GenerationFailure,
    StudyRagError,
    ValidationError,
    VectorStoreFailure,
)


@pytest.mark.parametrize(
    "exc_type",
    [ValidationError, ConfigurationError, EmbeddingFailure, VectorStoreFailure, GenerationFailure],
)
def test_subclasses_share_base(exc_type) -> None:
    exc = exc_type()
    assert isinstance(exc, StudyRagError)
    assert exc.message


def test_str_prefixes_provider() -> None:
    assert str(VectorStoreFailure("upsert failed", provider_name="chromadb")) == "[chromadb] upsert failed"


def test_str_without_provider() -> None:
    assert str(ValidationError("question must not be blank")) == "question must not be blank"


def test_embedding_failure_carries_chunk_index() -> None:
    exc = EmbeddingFailure("boom", provider_name="hash", chunk_index=4)
    assert exc.chunk_index == 4
    assert EmbeddingFailure().chunk_index is None
