"""Custom exception hierarchy for studyrag.

All application exceptions inherit from :class:`StudyRagError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "sentence_transformer") caused
the failure.

The hierarchy mirrors the three pluggable capabilities plus input checks:

    StudyRagError  (base -- catch-all for any studyrag error)
    +-- ValidationError      (blank input, bad chunker params, unscoped filter)
    +-- ConfigurationError   (startup / missing config)
    +-- EmbeddingFailure     (embedding model unavailable, errored, timed out)
    +-- VectorStoreFailure   (connection or index error on any store call)
    +-- GenerationFailure    (text generation failed; recoverable)

A query that matches nothing, or a delete that removes nothing, is *not* an
error: those are ordinary return values.

Adapters translate SDK exceptions (``openai.APIError``, chromadb errors,
model load errors) into this taxonomy with ``raise ... from exc`` so that
callers never need to import a provider SDK to handle a failure.
"""


class StudyRagError(Exception):
    """Base exception for all studyrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for
    structured log output, e.g. ``[chromadb] upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Input / configuration errors
# ---------------------------------------------------------------------------

class ValidationError(StudyRagError):
    """Raised for invalid caller input or invalid chunker parameters."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(StudyRagError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class EmbeddingFailure(StudyRagError):
    """Raised when an embedding cannot be produced.

    When raised from the ingestion pipeline, ``chunk_index`` names the
    position of the chunk whose embedding failed.
    """

    def __init__(
        self,
        message: str = "Embedding failed",
        provider_name: str | None = None,
        chunk_index: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._chunk_index = chunk_index

    @property
    def chunk_index(self) -> int | None:
        return self._chunk_index


class VectorStoreFailure(StudyRagError):
    """Raised on a connection or index error during any vector-store call."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationFailure(StudyRagError):
    """Raised when text generation fails or times out.

    The query service catches this and answers from the retrieved
    excerpts instead, so it never reaches the caller of ``answer()``.
    """

    def __init__(
        self,
        message: str = "Text generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
