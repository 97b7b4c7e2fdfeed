"""Common plumbing for embedders that run a model inside this process.

Subclasses say how to build the model, how to encode one batch and how to
read the model's output size; this base handles everything around that:

* the model is built on first use, once per instance.  Concurrent first
  calls queue on an ``asyncio.Lock`` and reuse the winner's model.
* model construction and encoding are blocking, so both run in a worker
  thread via :func:`asyncio.to_thread`.
* the dimension reported is the loaded model's.  ``known_dimensions`` only
  lets :meth:`get_dimension` answer for common models without loading
  weights; for any other model it loads the model to find out.
* blank input, load errors and encode errors all surface as
  :class:`EmbeddingFailure`.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Any

import structlog

from studyrag.interfaces.embedding_provider import IEmbeddingProvider
from studyrag.utils.errors import EmbeddingFailure
from studyrag.utils.text import is_blank

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class LocalModelEmbeddingProvider(IEmbeddingProvider):
    """Lazy-loading, thread-offloaded base for in-process embedding models."""

    #: Prefix of :meth:`get_provider_name`, e.g. ``"fastembed"``.
    family: str = "local"
    #: Output sizes of common models, answered without loading weights.
    known_dimensions: dict[str, int] = {}
    #: Inputs per encode call, sized for CPU inference.
    batch_size: int = 64

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or DEFAULT_LOCAL_MODEL
        self._dimension: int | None = self.known_dimensions.get(self._model_name)
        self._model: Any = None
        self._load_lock = asyncio.Lock()

    @abstractmethod
    def _create_model(self) -> Any:
        """Build the model object.  Runs in a worker thread."""

    @abstractmethod
    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        """Return one unit-length vector per input.  Runs in a worker thread."""

    @abstractmethod
    def _model_dimension(self, model: Any) -> int:
        """Read the output size from a loaded model."""

    def _load_blocking(self) -> None:
        try:
            model = self._create_model()
            dimension = self._model_dimension(model)
        except Exception as exc:
            raise EmbeddingFailure(
                message=f"Failed to load {self.family} model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if self._dimension is not None and dimension != self._dimension:
            logger.warning(
                "embedding_dimension_corrected",
                model=self._model_name,
                expected=self._dimension,
                actual=dimension,
            )
        self._model = model
        self._dimension = dimension
        logger.info(
            "embedding_model_loaded",
            family=self.family,
            model=self._model_name,
            dimension=dimension,
        )

    async def _ensure_model(self) -> None:
        if self._model is not None:
            return
        async with self._load_lock:
            if self._model is not None:
                return
            logger.info("embedding_model_loading", family=self.family, model=self._model_name)
            await asyncio.to_thread(self._load_blocking)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if any(is_blank(t) for t in texts):
            raise EmbeddingFailure(
                message="Cannot embed empty text",
                provider_name=self.get_provider_name(),
            )

        await self._ensure_model()

        vectors: list[list[float]] = []
        try:
            for offset in range(0, len(texts), self.batch_size):
                batch = texts[offset : offset + self.batch_size]
                vectors.extend(await asyncio.to_thread(self._encode_batch, batch))
        except Exception as exc:
            raise EmbeddingFailure(
                message=f"{self.family} encode failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        """Output size; loads the model first when it is not a known one.

        Raises
        ------
        EmbeddingFailure
            If the model has to be loaded and cannot be.
        """
        if self._dimension is None:
            self._load_blocking()
        return self._dimension  # type: ignore[return-value]

    def get_provider_name(self) -> str:
        return f"{self.family}_{self._model_name.rsplit('/', 1)[-1]}"
