"""Retrieval service: chunk, embed, index and search documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from docretriever.config import AppConfig
from docretriever.embedding.provider import EmbeddingProvider
from docretriever.errors import (
    EmbeddingProviderError,
    IndexPersistenceError,
    InputValidationError,
    RetrievalError,
)
from docretriever.index.search import SearchConfig, SearchResult
from docretriever.index.storage import IndexStore
from docretriever.index.vector_index import VectorIndex
from docretriever.models import Document, EmbeddedPassage, RagIndex, Result, SourceText
from docretriever.utils.text import (
    CHUNK_MODES,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_OVERLAP,
    MAX_CHUNKS,
    MAX_TEXT_CHARS,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    failed: int = 0
    passages: int = 0
    processed_paths: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def record(self, path: str, result: Result[Document], passages: int = 0) -> None:
        if result.ok:
            self.inserted += 1
            self.passages += passages
        else:
            self.failed += 1
            self.errors[path] = str(result.error)
        self.processed_paths.append(path)


class RetrievalService:
    """Coordinates chunking, embedding and the in-memory vector index.

    The index starts absent; the first successful :meth:`index_document`
    creates it. Operations that can fail for ordinary reasons (bad input,
    provider failure) return a :class:`Result` instead of raising.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        *,
        embedding_model: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        chunk_mode: str = "window",
        max_text_chars: int = MAX_TEXT_CHARS,
        max_chunks: int = MAX_CHUNKS,
        project_hash: str = "",
        top_k: int = 5,
        min_similarity: float = 0.6,
    ) -> None:
        if chunk_mode not in CHUNK_MODES:
            raise ValueError(f"Unknown chunk mode {chunk_mode!r}; expected one of {sorted(CHUNK_MODES)}")
        self.embedder = embedder
        self.embedding_model = embedding_model
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.chunk_mode = chunk_mode
        self.max_text_chars = max_text_chars
        self.max_chunks = max_chunks
        self.project_hash = project_hash
        self.top_k = top_k
        self.min_similarity = min_similarity
        self._index: Optional[VectorIndex] = None

    @classmethod
    def from_config(cls, config: AppConfig, embedder: EmbeddingProvider) -> "RetrievalService":
        return cls(
            embedder,
            embedding_model=config.embedding_model,
            chunk_size=config.chunk_chars,
            overlap=config.overlap,
            chunk_mode=config.chunk_mode,
            max_text_chars=config.max_text_chars,
            max_chunks=config.max_chunks,
            top_k=config.top_k,
            min_similarity=config.min_similarity,
        )

    def index_document(
        self,
        title: str,
        content: str,
        source_path: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Result[Document]:
        """Chunk, embed and append one document.

        Either every passage gets a vector and the document is appended, or
        the index is left exactly as it was.
        """
        LOGGER.info("Indexing document: %s (path: %s)", title, source_path)
        document = Document.create(title, content, source_path, metadata)
        chunker = CHUNK_MODES[self.chunk_mode]

        try:
            passages = chunker(
                content,
                document.id,
                chunk_size=self.chunk_size,
                overlap=self.overlap,
                max_text_chars=self.max_text_chars,
                max_chunks=self.max_chunks,
            )
            LOGGER.info("Created %d chunks for %s", len(passages), source_path)
            vectors = (
                self.embedder.embed_batch([p.content for p in passages], self.embedding_model)
                if passages
                else []
            )
            if len(vectors) != len(passages):
                raise EmbeddingProviderError(
                    f"Provider returned {len(vectors)} vectors for {len(passages)} passages"
                )
        except RetrievalError as exc:
            LOGGER.error("Error indexing document %s: %s", source_path, exc)
            return Result.failure(exc)

        embedded = [
            EmbeddedPassage.from_passage(passage, vector)
            for passage, vector in zip(passages, vectors)
        ]
        if self._index is None:
            self._index = VectorIndex(project_hash=self.project_hash)
        self._index.add_document(document, embedded)

        LOGGER.info("Document indexed with %d embedded passages", len(embedded))
        return Result.success(document)

    def index_documents(self, sources: Iterable[SourceText]) -> IndexStats:
        """Index several documents, counting failures instead of stopping."""
        stats = IndexStats()
        for source in sources:
            result = self.index_document(
                source.title, source.content, source.source_path, source.metadata
            )
            passages = 0
            if result.ok and self._index is not None:
                document_id = result.unwrap().id
                passages = sum(
                    1 for item in self._index.embedded_passages if item.document_id == document_id
                )
            else:
                LOGGER.warning("Failed to index %s: %s", source.source_path, result.error)
            stats.record(source.source_path, result, passages)
        return stats

    def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> Result[List[SearchResult]]:
        """Rank indexed passages against ``query``.

        ``top_k`` and ``min_similarity`` default to the values the service was
        built with.
        """
        try:
            config = SearchConfig(
                top_k=self.top_k if top_k is None else top_k,
                min_similarity=self.min_similarity if min_similarity is None else min_similarity,
            )
        except InputValidationError as exc:
            return Result.failure(exc)

        if self._index is None or not self._index.embedded_passages:
            LOGGER.warning("No index available for search")
            return Result.success([])

        LOGGER.info("Searching for query: %s", query)
        try:
            query_vector = self.embedder.embed(query, self.embedding_model)
            results = self._index.search(query_vector, config)
        except RetrievalError as exc:
            LOGGER.error("Error searching: %s", exc)
            return Result.failure(exc)

        LOGGER.info("Found %d relevant chunks", len(results))
        return Result.success(results)

    def remove_document(self, document_id: str) -> None:
        if self._index is None:
            return
        if self._index.remove_document(document_id):
            LOGGER.info("Removed document %s from index", document_id)
        else:
            LOGGER.debug("Document %s not in index; nothing removed", document_id)

    def load_index(self, snapshot: RagIndex) -> None:
        self._index = VectorIndex(snapshot)
        self.project_hash = snapshot.project_hash
        LOGGER.info(
            "Loaded index with %d documents and %d embedded passages",
            len(snapshot.documents),
            len(snapshot.embedded_passages),
        )

    def get_index(self) -> Optional[RagIndex]:
        return self._index.snapshot() if self._index is not None else None

    def clear_index(self) -> None:
        self._index = None
        LOGGER.info("Index cleared")

    def persist(self, store: IndexStore, key: str) -> Result[Path]:
        """Save the current index under ``key``, stamping it as its project hash."""
        if self._index is None:
            return Result.failure(IndexPersistenceError("No index to save"))
        self.project_hash = key
        self._index.project_hash = key
        return store.save(key, self._index.snapshot())

    def restore(self, store: IndexStore, key: str) -> bool:
        """Load the index stored under ``key``. Returns False when none is usable."""
        snapshot = store.load(key)
        if snapshot is None:
            return False
        self.load_index(snapshot)
        return True

    def stats(self) -> Dict[str, Any]:
        if self._index is None:
            return {
                "documents": 0,
                "embedded_passages": 0,
                "last_updated": None,
                "project_hash": self.project_hash,
            }
        return {
            "documents": len(self._index.documents),
            "embedded_passages": len(self._index.embedded_passages),
            "last_updated": self._index.last_updated,
            "project_hash": self._index.project_hash,
        }
