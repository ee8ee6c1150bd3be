"""
Ollama embedding provider.

Thin HTTP client for Ollama's ``/api/embed`` endpoint. The response body is
validated against a fixed schema and turned into plain float lists before it
leaves this module.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict, ValidationError

from docretriever.embedding.provider import Vector, check_vectors
from docretriever.errors import EmbeddingProviderError

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_EMBED_MODEL = "nomic-embed-text"
PROVIDER_NAME = "ollama"

logger = logging.getLogger(__name__)


class EmbedResponse(BaseModel):
    """Body returned by ``POST /api/embed``."""

    model_config = ConfigDict(extra="ignore")

    embeddings: List[List[float]]


@dataclass(slots=True)
class OllamaConfig:
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_EMBED_MODEL
    timeout_seconds: float = 60.0
    batch_size: int = 32
    max_workers: int = 1


class OllamaEmbedder:
    """
    Embedding provider backed by a local or remote Ollama server.

    Texts are posted in batches of ``batch_size``. With ``max_workers > 1``
    the batches are sent concurrently; results are always returned in input
    order.

    Example:
        >>> embedder = OllamaEmbedder(OllamaConfig(model="nomic-embed-text"))
        >>> vector = embedder.embed("How is the index persisted?")
    """

    def __init__(
        self,
        config: Optional[OllamaConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or OllamaConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self._session = session or requests.Session()
        logger.debug(
            f"Initialized OllamaEmbedder: base_url={self.base_url}, model={self.config.model}"
        )

    def embed(self, text: str, model: Optional[str] = None) -> Vector:
        return self.embed_batch([text], model)[0]

    def embed_batch(self, texts: Sequence[str], model: Optional[str] = None) -> List[Vector]:
        texts = list(texts)
        if not texts:
            return []
        embed_model = model or self.config.model
        size = max(1, self.config.batch_size)
        batches = [texts[i : i + size] for i in range(0, len(texts), size)]

        if self.config.max_workers > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                # map() yields in submission order regardless of completion order
                results = list(pool.map(lambda batch: self._post_embed(batch, embed_model), batches))
        else:
            results = [self._post_embed(batch, embed_model) for batch in batches]

        vectors = [vector for batch in results for vector in batch]
        return check_vectors(vectors, len(texts), provider=PROVIDER_NAME)

    def _post_embed(self, texts: List[str], model: str) -> List[Vector]:
        url = f"{self.base_url}/api/embed"
        payload = {"model": model, "input": texts}
        logger.debug(f"Making embedding request to {url} with model {model} ({len(texts)} texts)")

        try:
            response = self._session.post(url, json=payload, timeout=self.config.timeout_seconds)
        except requests.Timeout as exc:
            logger.error(f"Ollama embedding request timed out: {exc}")
            raise EmbeddingProviderError(
                f"Ollama embedding request to {url} timed out after "
                f"{self.config.timeout_seconds}s",
                provider=PROVIDER_NAME,
            ) from exc
        except requests.ConnectionError as exc:
            logger.error(f"Failed to connect to Ollama for embedding: {exc}")
            raise EmbeddingProviderError(
                f"Cannot connect to Ollama at {self.base_url}. Start Ollama and make "
                f"sure the '{model}' model is installed.",
                provider=PROVIDER_NAME,
            ) from exc
        except requests.RequestException as exc:
            logger.error(f"Ollama embedding request failed: {exc}")
            raise EmbeddingProviderError(
                f"Ollama embedding request failed: {exc}", provider=PROVIDER_NAME
            ) from exc

        if not response.ok:
            logger.error(f"HTTP error from Ollama embed: {response.status_code} - {response.text}")
            raise EmbeddingProviderError(
                f"Ollama embed API error: {response.status_code} - {response.text}",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
            )

        try:
            body = EmbedResponse.model_validate(response.json())
        except ValueError as exc:
            # pydantic's ValidationError and JSON decode errors are both ValueErrors
            kind = "Malformed" if isinstance(exc, ValidationError) else "Invalid JSON"
            logger.error(f"{kind} response from Ollama embed: {exc}")
            raise EmbeddingProviderError(
                f"{kind} response from Ollama embed: {exc}", provider=PROVIDER_NAME
            ) from exc

        return body.embeddings

    def check_health(self) -> bool:
        """Return True when the Ollama server answers ``GET /api/tags``."""
        try:
            response = self._session.get(
                f"{self.base_url}/api/tags", timeout=self.config.timeout_seconds
            )
        except requests.RequestException as exc:
            logger.warning(f"Ollama health check failed: {exc}")
            return False
        return response.ok
