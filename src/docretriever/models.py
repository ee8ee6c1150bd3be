"""Core DocRetriever data models."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


def new_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class Document:
    """A source unit (file, page) registered in the index."""

    id: str
    title: str
    content: str
    timestamp: int
    source_path: str
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        title: str,
        content: str,
        source_path: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> "Document":
        return cls(
            id=new_id(),
            title=title,
            content=content,
            timestamp=now_millis(),
            source_path=source_path,
            metadata={str(k): str(v) for k, v in (metadata or {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "timestamp": self.timestamp,
            "source_path": self.source_path,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise TypeError(f"metadata must be an object, got {type(metadata).__name__}")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            content=str(data["content"]),
            timestamp=int(data["timestamp"]),
            source_path=str(data["source_path"]),
            metadata={str(k): str(v) for k, v in metadata.items()},
        )


@dataclass(slots=True)
class Passage:
    """Contiguous slice of a document's content, the unit of embedding."""

    id: str
    document_id: str
    content: str
    sequence_index: int
    start_offset: int
    end_offset: int


@dataclass(slots=True)
class EmbeddedPassage:
    """Passage content stored next to its vector."""

    passage_id: str
    document_id: str
    content: str
    vector: List[float]
    sequence_index: int

    @classmethod
    def from_passage(cls, passage: Passage, vector: List[float]) -> "EmbeddedPassage":
        return cls(
            passage_id=passage.id,
            document_id=passage.document_id,
            content=passage.content,
            vector=[float(x) for x in vector],
            sequence_index=passage.sequence_index,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passage_id": self.passage_id,
            "document_id": self.document_id,
            "content": self.content,
            "vector": list(self.vector),
            "sequence_index": self.sequence_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmbeddedPassage":
        return cls(
            passage_id=str(data["passage_id"]),
            document_id=str(data["document_id"]),
            content=str(data["content"]),
            vector=[float(x) for x in data["vector"]],
            sequence_index=int(data["sequence_index"]),
        )


@dataclass(slots=True)
class RagIndex:
    """Documents and embedded passages searched by the engine."""

    documents: List[Document] = field(default_factory=list)
    embedded_passages: List[EmbeddedPassage] = field(default_factory=list)
    last_updated: int = 0
    project_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "embedded_passages": [item.to_dict() for item in self.embedded_passages],
            "last_updated": self.last_updated,
            "project_hash": self.project_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RagIndex":
        return cls(
            documents=[Document.from_dict(doc) for doc in data["documents"]],
            embedded_passages=[
                EmbeddedPassage.from_dict(item) for item in data["embedded_passages"]
            ],
            last_updated=int(data["last_updated"]),
            project_hash=str(data.get("project_hash", "")),
        )


@dataclass(slots=True)
class SourceText:
    """Input for bulk indexing."""

    title: str
    content: str
    source_path: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Result(Generic[T]):
    """Outcome of an operation: either a value or the error that prevented it."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, raising the stored error for failed results."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
