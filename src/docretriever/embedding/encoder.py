"""Local embedding model management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np

from docretriever.embedding.provider import Vector, check_vectors
from docretriever.errors import EmbeddingProviderError

DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"
PROVIDER_NAME = "sentence-transformers"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    device: str | None = None


class SentenceTransformerEmbedder:
    """Embedding provider running a `SentenceTransformer` in process.

    Requires the ``local`` extra. The model is loaded on first use and kept
    for the lifetime of the embedder. Passing a ``model`` name that differs
    from the configured one is an error rather than a silent reload.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model: Any = None

    def _load_model(self) -> Any:
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            try:
                self._model = SentenceTransformer(
                    self.config.model_name, device=self.config.device
                )
            except Exception as exc:
                raise EmbeddingProviderError(
                    f"Failed to load embedding model '{self.config.model_name}': {exc}",
                    provider=PROVIDER_NAME,
                ) from exc
            logger.info(
                "Loaded embedding model %s (dimension %s)",
                self.config.model_name,
                self._model.get_sentence_embedding_dimension(),
            )
        return self._model

    @property
    def dimension(self) -> int:
        return int(self._load_model().get_sentence_embedding_dimension())

    def embed(self, text: str, model: Optional[str] = None) -> Vector:
        """Convenience wrapper for single-text embedding."""
        return self.embed_batch([text], model)[0]

    def embed_batch(self, texts: Sequence[str], model: Optional[str] = None) -> List[Vector]:
        """Return float embeddings for input texts, in input order."""
        if model is not None and model != self.config.model_name:
            raise EmbeddingProviderError(
                f"Model '{model}' requested but '{self.config.model_name}' is loaded",
                provider=PROVIDER_NAME,
            )
        sentences = list(texts)
        if not sentences:
            return []

        encoder = self._load_model()
        try:
            embeddings = encoder.encode(
                sentences,
                batch_size=self.config.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.config.normalize,
            )
        except Exception as exc:
            logger.error(f"Local embedding failed: {exc}")
            raise EmbeddingProviderError(
                f"Local embedding failed: {exc}", provider=PROVIDER_NAME
            ) from exc

        matrix = np.asarray(embeddings, dtype="float32")
        return check_vectors(matrix.tolist(), len(sentences), provider=PROVIDER_NAME)
