"""Retrieval-augmented question answering over one owner's documents.

Pipeline stages: **embed question -> owner-scoped top-k search -> build
context -> generate**.

Generation is the only stage allowed to fail softly.  When the generation
provider errors or times out, the answer is assembled from the best
retrieved excerpts instead, and the result is flagged ``degraded``.  An
owner with no matching chunks gets a fixed answer and the generation
provider is never called.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studyrag.models.filters import owner_scope
from studyrag.models.rag import QueryResult, RetrievedChunk
from studyrag.utils.concurrency import call_with_timeout
from studyrag.utils.errors import EmbeddingFailure, ValidationError
from studyrag.utils.text import is_blank, truncate

if TYPE_CHECKING:
    from studyrag.interfaces.embedding_provider import IEmbeddingProvider
    from studyrag.interfaces.generation_provider import IGenerationProvider
    from studyrag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

NO_DOCUMENTS_ANSWER = (
    "I don't have any documents uploaded yet that relate to your question. "
    "Please upload relevant course materials, and I'll be able to help you better!"
)

CONTEXT_SEPARATOR = "\n\n---\n\n"

_GROUNDING_PROMPT = """You are an AI academic assistant helping a student with their coursework. Use the provided context from their uploaded documents to answer their question accurately and helpfully.

IMPORTANT RULES:
- Answer based ONLY on the context provided below
- If the context doesn't contain enough information, say "I don't have enough information in your uploaded documents to fully answer that question"
- Cite which document(s) the information comes from in your answer
- Structure your response clearly with proper paragraphs
- Be educational and concise
- Use bullet points or numbered lists when appropriate

---CONTEXT FROM STUDENT'S DOCUMENTS---
{context}

---STUDENT'S QUESTION---
{question}

---INSTRUCTIONS---
Provide a well-structured, clear answer based on the context above. Start directly with the answer without preamble."""

_FALLBACK_INTRO = "I encountered an issue generating a response. Here's what I found in your documents:"
_FALLBACK_NOTE = "*Note: Answer generation is temporarily unavailable, so these are the most relevant excerpts.*"


def build_context(results: list[RetrievedChunk]) -> str:
    """Join retrieved chunks in rank order, each headed by its source name."""
    return CONTEXT_SEPARATOR.join(f"[Source: {r.source_name}]\n{r.text}" for r in results)


def build_prompt(context: str, question: str) -> str:
    """Return the grounding prompt for *question* over *context*."""
    return _GROUNDING_PROMPT.format(context=context, question=question)


def build_fallback_answer(results: list[RetrievedChunk], excerpt_count: int = 2) -> str:
    """Deterministic answer quoting the top *excerpt_count* chunks verbatim."""
    excerpts = "\n".join(f"**From {r.source_name}:**\n{r.text}\n" for r in results[:excerpt_count])
    return f"{_FALLBACK_INTRO}\n\n{excerpts}\n\n{_FALLBACK_NOTE}"


def distinct_sources(results: list[RetrievedChunk]) -> list[str]:
    """Distinct non-empty source names in order of first appearance."""
    return list(dict.fromkeys(r.source_name for r in results if r.source_name))


class QueryService:
    """Answers an owner's question from that owner's stored chunks only.

    Parameters
    ----------
    embedding_provider:
        Must be the instance used for ingestion (same vector space).
    vector_store:
        Store searched with an ``owner_id`` filter.
    generation_provider:
        Model that writes the grounded answer.
    top_k:
        Number of chunks retrieved per question.
    fallback_excerpt_count:
        Number of chunks quoted when generation fails.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        generation_provider: IGenerationProvider,
        top_k: int = 5,
        fallback_excerpt_count: int = 2,
        embedding_timeout: float = 30.0,
        generation_timeout: float = 25.0,
        max_retries: int = 2,
        retry_backoff: float = 0.5,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._generation_provider = generation_provider
        self._top_k = top_k
        self._fallback_excerpt_count = fallback_excerpt_count
        self._embedding_timeout = embedding_timeout
        self._generation_timeout = generation_timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def answer(self, owner_id: str, question: str) -> QueryResult:
        """Answer *question* using only *owner_id*'s documents.

        Raises
        ------
        ValidationError
            If *owner_id* or *question* is blank.
        EmbeddingFailure
            If the question cannot be embedded.
        VectorStoreFailure
            If the similarity search fails.
        """
        if is_blank(owner_id):
            raise ValidationError("owner_id must not be blank")
        if is_blank(question):
            raise ValidationError("question must not be blank")

        query_embedding = await self._embed_question(question)
        results = await self._vector_store.query(
            query_embedding,
            k=self._top_k,
            where=owner_scope(owner_id),
        )

        if not results:
            logger.info(
                "query_no_documents",
                owner_id=owner_id,
                question=truncate(question),
            )
            return QueryResult(answer=NO_DOCUMENTS_ANSWER, sources=[], chunk_count=0)

        prompt = build_prompt(build_context(results), question)
        degraded = False
        try:
            answer = await call_with_timeout(
                lambda: self._generation_provider.generate(
                    prompt,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._generation_timeout,
                retries=self._max_retries,
                backoff=self._retry_backoff,
                operation="generate_answer",
            )
        except Exception as exc:
            logger.warning(
                "generation_failed_fallback",
                provider=self._generation_provider.get_provider_name(),
                error=str(exc) or type(exc).__name__,
                question=truncate(question),
            )
            answer = build_fallback_answer(results, self._fallback_excerpt_count)
            degraded = True

        sources = distinct_sources(results)
        logger.info(
            "query_answered",
            owner_id=owner_id,
            question=truncate(question),
            chunk_count=len(results),
            sources=len(sources),
            degraded=degraded,
        )
        return QueryResult(
            answer=answer,
            sources=sources,
            chunk_count=len(results),
            degraded=degraded,
        )

    async def _embed_question(self, question: str) -> list[float]:
        try:
            return await call_with_timeout(
                lambda: self._embedding_provider.embed_single(question),
                timeout=self._embedding_timeout,
                retries=self._max_retries,
                backoff=self._retry_backoff,
                operation="embed_question",
            )
        except TimeoutError as exc:
            raise EmbeddingFailure(
                message="Embedding the question timed out",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc
