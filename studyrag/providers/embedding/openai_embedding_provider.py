"""Remote embeddings through an OpenAI-style ``/embeddings`` endpoint.

Selected when both ``OPENAI_API_KEY`` and ``OPENAI_EMBEDDING_MODEL`` are set,
or when ``EMBEDDING_BACKEND=openai`` pins it.  ``OPENAI_BASE_URL`` redirects
the client to any host that speaks the same API.  Hosts differ on whether
they return unit-length vectors, so every batch is L2-normalised here before
it reaches the vector store.
"""

from __future__ import annotations

import numpy as np
import openai
import structlog

from studyrag.config.settings import Settings
from studyrag.interfaces.embedding_provider import IEmbeddingProvider
from studyrag.utils.errors import EmbeddingFailure
from studyrag.utils.text import is_blank

logger = structlog.get_logger(logger_name=__name__)

# Per-request input cap of the OpenAI embeddings endpoint.
_MAX_INPUTS_PER_REQUEST = 2048

_DEFAULT_MODEL = "text-embedding-3-small"

_DIMENSIONS_BY_MODEL: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


def l2_normalize(vectors: list[list[float]]) -> list[list[float]]:
    """Scale each row to unit length; all-zero rows are returned unchanged."""
    matrix = np.asarray(vectors, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return (matrix / norms).tolist()


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embeds course-material chunks with a hosted embedding model.

    The vector dimension is looked up from the model name; unknown models
    are assumed to produce 1536-d vectors, and the vector store's startup
    check catches a wrong guess.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _DIMENSIONS_BY_MODEL.get(self._model, 1536)
        self._label = "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        # The SDK refuses an empty key at construction, so no key means no client.
        self._client: openai.AsyncOpenAI | None = None
        if self._api_key:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=settings.openai_base_url or None,
                timeout=openai.Timeout(settings.embedding_timeout_seconds + 5.0, connect=5.0),
            )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if any(is_blank(t) for t in texts):
            raise EmbeddingFailure(
                message="Cannot embed empty text",
                provider_name=self.get_provider_name(),
            )

        vectors: list[list[float]] = []
        for offset in range(0, len(texts), _MAX_INPUTS_PER_REQUEST):
            window = texts[offset : offset + _MAX_INPUTS_PER_REQUEST]
            vectors.extend(await self._request(window))
        return l2_normalize(vectors)

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    async def _request(self, inputs: list[str]) -> list[list[float]]:
        if self._client is None:
            raise EmbeddingFailure(
                message="OPENAI_API_KEY is not set",
                provider_name=self.get_provider_name(),
            )
        try:
            response = await self._client.embeddings.create(input=inputs, model=self._model)
        except openai.APITimeoutError as exc:
            raise EmbeddingFailure(
                message=f"{self._label} request timed out",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingFailure(
                message=f"{self._label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "openai_embedding_request",
            model=self._model,
            inputs=len(inputs),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._label

    def is_available(self) -> bool:
        """Configured means a key is present; the key is not verified."""
        return bool(self._api_key)
