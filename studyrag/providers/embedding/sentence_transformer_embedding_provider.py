"""Default embedder: a sentence-transformers model on local CPU/GPU.

``all-MiniLM-L6-v2`` (384-d) unless ``EMBEDDING_MODEL`` names another
HuggingFace model.  Needs the ``local`` extra; weights download on first
load.
"""

from __future__ import annotations

from typing import Any

from studyrag.providers.embedding.local_model_provider import LocalModelEmbeddingProvider


class SentenceTransformerEmbeddingProvider(LocalModelEmbeddingProvider):
    family = "sentence_transformer"
    known_dimensions = {
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "sentence-transformers/all-MiniLM-L12-v2": 384,
        "sentence-transformers/all-mpnet-base-v2": 768,
        "BAAI/bge-small-en-v1.5": 384,
        "BAAI/bge-base-en-v1.5": 768,
    }

    def _create_model(self) -> Any:
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self._model_name)

    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        # The model normalises, so no second pass is needed.
        vectors = self._model.encode(batch, normalize_embeddings=True, show_progress_bar=False)
        return vectors.tolist()

    def _model_dimension(self, model: Any) -> int:
        return int(model.get_sentence_embedding_dimension())

    def is_available(self) -> bool:
        try:
            import sentence_transformers  # noqa: F401
        except ImportError:
            return False
        return True
