"""ONNX Runtime embedder via fastembed: no PyTorch, small RAM footprint.

Defaults to the same ``all-MiniLM-L6-v2`` weights as the sentence-transformers
provider, so a collection built with one can be queried with the other.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from studyrag.providers.embedding.local_model_provider import LocalModelEmbeddingProvider


class FastEmbedEmbeddingProvider(LocalModelEmbeddingProvider):
    family = "fastembed"
    known_dimensions = {
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "BAAI/bge-small-en-v1.5": 384,
        "BAAI/bge-base-en-v1.5": 768,
    }

    def _create_model(self) -> Any:
        from fastembed import TextEmbedding

        return TextEmbedding(model_name=self._model_name)

    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        # fastembed yields one array per input and does not always normalise.
        matrix = np.vstack(list(self._model.embed(batch))).astype(np.float32)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return (matrix / norms).tolist()

    def _model_dimension(self, model: Any) -> int:
        # fastembed exposes no size attribute; encode one token and measure.
        (vector,) = list(model.embed(["dimension"]))
        return len(vector)

    def is_available(self) -> bool:
        try:
            import fastembed  # noqa: F401
        except ImportError:
            return False
        return True
