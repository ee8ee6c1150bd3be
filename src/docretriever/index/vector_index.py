"""In-memory vector index."""

from __future__ import annotations

from typing import List, Optional, Sequence

from docretriever.index.search import SearchConfig, SearchResult, rank_passages
from docretriever.models import Document, EmbeddedPassage, RagIndex, now_millis


class VectorIndex:
    """Owns one :class:`RagIndex` and routes every mutation through methods.

    Mutations replace the underlying lists instead of editing them, so a
    snapshot returned earlier is never changed behind the caller's back.
    """

    def __init__(self, snapshot: Optional[RagIndex] = None, *, project_hash: str = "") -> None:
        if snapshot is None:
            snapshot = RagIndex(last_updated=now_millis(), project_hash=project_hash)
        self._index = RagIndex(
            documents=list(snapshot.documents),
            embedded_passages=list(snapshot.embedded_passages),
            last_updated=snapshot.last_updated,
            project_hash=snapshot.project_hash,
        )

    @property
    def documents(self) -> List[Document]:
        return list(self._index.documents)

    @property
    def embedded_passages(self) -> List[EmbeddedPassage]:
        return list(self._index.embedded_passages)

    @property
    def project_hash(self) -> str:
        return self._index.project_hash

    @project_hash.setter
    def project_hash(self, value: str) -> None:
        self._index.project_hash = value

    @property
    def last_updated(self) -> int:
        return self._index.last_updated

    @property
    def is_empty(self) -> bool:
        return not self._index.documents

    def get_document(self, document_id: str) -> Optional[Document]:
        for document in self._index.documents:
            if document.id == document_id:
                return document
        return None

    def snapshot(self) -> RagIndex:
        return RagIndex(
            documents=list(self._index.documents),
            embedded_passages=list(self._index.embedded_passages),
            last_updated=self._index.last_updated,
            project_hash=self._index.project_hash,
        )

    def add_document(self, document: Document, passages: Sequence[EmbeddedPassage]) -> None:
        """Append a document together with all of its embedded passages."""
        previous = -1
        for passage in passages:
            if passage.document_id != document.id:
                raise ValueError(
                    f"Passage {passage.passage_id} belongs to {passage.document_id}, "
                    f"not {document.id}"
                )
            if passage.sequence_index <= previous:
                raise ValueError("Passages must be in increasing sequence order")
            previous = passage.sequence_index

        self._index = RagIndex(
            documents=self._index.documents + [document],
            embedded_passages=self._index.embedded_passages + list(passages),
            last_updated=now_millis(),
            project_hash=self._index.project_hash,
        )

    def remove_document(self, document_id: str) -> bool:
        """Drop a document and its passages. Returns False when it was not indexed."""
        documents = [doc for doc in self._index.documents if doc.id != document_id]
        if len(documents) == len(self._index.documents):
            return False
        self._index = RagIndex(
            documents=documents,
            embedded_passages=[
                item for item in self._index.embedded_passages if item.document_id != document_id
            ],
            last_updated=now_millis(),
            project_hash=self._index.project_hash,
        )
        return True

    def search(self, query_vector: Sequence[float], config: SearchConfig) -> List[SearchResult]:
        return rank_passages(
            query_vector, self._index.embedded_passages, self._index.documents, config
        )
