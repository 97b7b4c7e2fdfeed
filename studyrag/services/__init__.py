"""Pipeline services: chunking, ingestion, question answering and deletion.

Services depend only on the interfaces in :mod:`studyrag.interfaces`;
concrete providers are injected by :func:`studyrag.main.build_services`.
"""

from studyrag.services.chunker import TextChunker, chunk
from studyrag.services.deletion_service import DeletionService
from studyrag.services.ingestion_service import IngestionService
from studyrag.services.query_service import NO_DOCUMENTS_ANSWER, QueryService

__all__ = [
    "DeletionService",
    "IngestionService",
    "NO_DOCUMENTS_ANSWER",
    "QueryService",
    "TextChunker",
    "chunk",
]
