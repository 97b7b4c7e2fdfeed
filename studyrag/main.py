"""Application wiring for studyrag.

Constructs every provider once from :class:`Settings` and injects them into
the three pipeline services.  Nothing else in the package builds a model
client, so tests and embedding applications can assemble the services
from fakes instead.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from studyrag.config.settings import Settings
from studyrag.interfaces.embedding_provider import IEmbeddingProvider
from studyrag.interfaces.generation_provider import IGenerationProvider
from studyrag.interfaces.vector_store_provider import IVectorStoreProvider
from studyrag.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from studyrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from studyrag.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)
from studyrag.providers.generation.anthropic_provider import AnthropicGenerationProvider
from studyrag.providers.generation.ollama_provider import OllamaGenerationProvider
from studyrag.providers.generation.openai_provider import OpenAIGenerationProvider
from studyrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from studyrag.services.chunker import TextChunker
from studyrag.services.deletion_service import DeletionService
from studyrag.services.ingestion_service import IngestionService
from studyrag.services.query_service import QueryService
from studyrag.utils.errors import ConfigurationError

_logger: structlog.BoundLogger = structlog.get_logger(logger_name=__name__)

_EMBEDDING_BACKENDS = ("auto", "openai", "fastembed", "sentence_transformers")

_GENERATION_PROVIDERS: dict[str, type[IGenerationProvider]] = {
    "anthropic": AnthropicGenerationProvider,
    "openai": OpenAIGenerationProvider,
    "ollama": OllamaGenerationProvider,
}


@dataclass(frozen=True)
class StudyRagServices:
    """The assembled pipelines plus the providers they share."""

    ingestion: IngestionService
    query: QueryService
    deletion: DeletionService
    embedding_provider: IEmbeddingProvider
    vector_store: IVectorStoreProvider
    generation_provider: IGenerationProvider


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider named by ``EMBEDDING_BACKEND``.

    ``auto`` priority: OpenAI-compatible (key and model configured) ->
    fastembed -> sentence-transformers.
    """
    backend = app_settings.embedding_backend.strip().lower()
    if backend not in _EMBEDDING_BACKENDS:
        raise ConfigurationError(
            f"Unknown EMBEDDING_BACKEND '{app_settings.embedding_backend}'. "
            f"Expected one of: {', '.join(_EMBEDDING_BACKENDS)}"
        )

    candidates: list[IEmbeddingProvider] = []
    if backend == "openai" or (
        backend == "auto" and app_settings.openai_api_key and app_settings.openai_embedding_model
    ):
        candidates.append(OpenAIEmbeddingProvider(settings=app_settings))
    if backend in ("auto", "fastembed"):
        candidates.append(FastEmbedEmbeddingProvider(model_name=app_settings.embedding_model))
    if backend in ("auto", "sentence_transformers"):
        candidates.append(SentenceTransformerEmbeddingProvider(model_name=app_settings.embedding_model))

    for provider in candidates:
        if provider.is_available():
            return provider

    raise ConfigurationError(
        f"No embedding provider available for EMBEDDING_BACKEND='{backend}'. "
        "Install the 'local' extra (fastembed / sentence-transformers) "
        "or set OPENAI_API_KEY and OPENAI_EMBEDDING_MODEL."
    )


def _build_generation_provider(app_settings: Settings) -> IGenerationProvider:
    """Select the first generation provider with credentials configured.

    Priority order: Anthropic -> OpenAI -> Ollama.
    """
    available = app_settings.get_available_generation_providers()
    if not available:
        raise ConfigurationError(
            "No generation provider configured. Set ANTHROPIC_API_KEY, "
            "OPENAI_API_KEY or OLLAMA_BASE_URL."
        )
    provider_cls = _GENERATION_PROVIDERS[available[0]]
    return provider_cls(settings=app_settings)


def _build_vector_store(app_settings: Settings, embedding_provider: IEmbeddingProvider) -> IVectorStoreProvider:
    return ChromaDBProvider(
        embedding_dimension=embedding_provider.get_dimension(),
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
    )


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def assemble_services(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider,
    vector_store: IVectorStoreProvider,
    generation_provider: IGenerationProvider,
) -> StudyRagServices:
    """Wire already-built providers into the three pipelines."""
    chunker = TextChunker(chunk_size=app_settings.chunk_size, overlap=app_settings.chunk_overlap)
    ingestion = IngestionService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        chunker=chunker,
        embedding_concurrency=app_settings.embedding_concurrency,
        embedding_timeout=app_settings.embedding_timeout_seconds,
        max_retries=app_settings.provider_max_retries,
    )
    query = QueryService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        generation_provider=generation_provider,
        top_k=app_settings.retrieval_top_k,
        fallback_excerpt_count=app_settings.fallback_excerpt_count,
        embedding_timeout=app_settings.embedding_timeout_seconds,
        generation_timeout=app_settings.generation_timeout_seconds,
        max_retries=app_settings.provider_max_retries,
        temperature=app_settings.generation_temperature,
        max_tokens=app_settings.generation_max_tokens,
    )
    deletion = DeletionService(vector_store=vector_store)
    return StudyRagServices(
        ingestion=ingestion,
        query=query,
        deletion=deletion,
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        generation_provider=generation_provider,
    )


def build_services(app_settings: Settings | None = None) -> StudyRagServices:
    """Construct every provider and service from settings.

    Raises
    ------
    ConfigurationError
        If no embedding or generation backend is usable, the chunker
        settings are invalid, or the collection holds vectors of another
        dimension.
    """
    app_settings = app_settings or Settings()
    if app_settings.chunk_overlap >= app_settings.chunk_size:
        raise ConfigurationError(
            f"CHUNK_OVERLAP ({app_settings.chunk_overlap}) must be smaller than "
            f"CHUNK_SIZE ({app_settings.chunk_size})"
        )

    embedding_provider = _build_embedding_provider(app_settings)
    generation_provider = _build_generation_provider(app_settings)
    vector_store = _build_vector_store(app_settings, embedding_provider)

    _logger.info(
        "services_ready",
        embedding_provider=embedding_provider.get_provider_name(),
        embedding_dimension=embedding_provider.get_dimension(),
        generation_provider=generation_provider.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        collection=app_settings.chromadb_collection,
    )
    return assemble_services(app_settings, embedding_provider, vector_store, generation_provider)
