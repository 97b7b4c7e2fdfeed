"""studyrag domain models; re-exports all public model classes.

    - rag.py:     chunks, stored vector records, retrieval hits, and the
                  result objects of the ingest / query / delete pipelines
    - filters.py: owner-scoped metadata predicates for store reads
"""

from studyrag.models.filters import And, Equals, Predicate, owner_scope, owner_source_scope
from studyrag.models.rag import (
    Chunk,
    DocumentHandle,
    IngestionResult,
    QueryResult,
    RetrievedChunk,
    VectorRecord,
    make_chunk_id,
    make_document_id,
    mint_timestamp,
)

__all__ = [
    "And",
    "Chunk",
    "DocumentHandle",
    "Equals",
    "IngestionResult",
    "Predicate",
    "QueryResult",
    "RetrievedChunk",
    "VectorRecord",
    "make_chunk_id",
    "make_document_id",
    "mint_timestamp",
    "owner_scope",
    "owner_source_scope",
]
