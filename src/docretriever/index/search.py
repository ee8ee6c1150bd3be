"""Exact similarity ranking over embedded passages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from docretriever.errors import DimensionMismatchError, InputValidationError
from docretriever.models import Document, EmbeddedPassage

UNKNOWN = "<unknown>"
NO_CONTEXT = "No relevant project context found."

# Scores within this distance of the threshold are kept, so an identical
# vector still passes min_similarity=1.0 despite rounding.
SIMILARITY_TOLERANCE = 1e-9


@dataclass(slots=True, frozen=True)
class SearchConfig:
    top_k: int = 5
    min_similarity: float = 0.6

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise InputValidationError(f"top_k must be >= 1, got {self.top_k}")
        if not 0.0 <= self.min_similarity <= 1.0:
            raise InputValidationError(
                f"min_similarity must be within [0, 1], got {self.min_similarity}"
            )


@dataclass(slots=True)
class SearchResult:
    passage: EmbeddedPassage
    similarity: float
    document_title: str
    source_path: str

    @property
    def content(self) -> str:
        return self.passage.content


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows (or a query) with zero norm score 0.
    """
    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros_like(dots)
    np.divide(dots, denominators, out=scores, where=denominators != 0)
    return np.clip(scores, -1.0, 1.0)


def rank_passages(
    query_vector: Sequence[float],
    passages: Sequence[EmbeddedPassage],
    documents: Iterable[Document],
    config: SearchConfig,
) -> List[SearchResult]:
    """Brute-force ranking of every passage against the query vector."""
    if not passages:
        return []

    query = np.asarray(query_vector, dtype=np.float64)
    for passage in passages:
        if len(passage.vector) != query.shape[0]:
            raise DimensionMismatchError(query.shape[0], len(passage.vector))

    matrix = np.asarray([passage.vector for passage in passages], dtype=np.float64)
    scores = cosine_similarities(query, matrix)

    candidates = np.flatnonzero(scores >= config.min_similarity - SIMILARITY_TOLERANCE)
    # stable sort keeps insertion order among equal scores
    order = candidates[np.argsort(-scores[candidates], kind="stable")][: config.top_k]

    by_id: Dict[str, Document] = {doc.id: doc for doc in documents}
    results: List[SearchResult] = []
    for idx in order:
        passage = passages[idx]
        document = by_id.get(passage.document_id)
        results.append(
            SearchResult(
                passage=passage,
                similarity=float(scores[idx]),
                document_title=document.title if document else UNKNOWN,
                source_path=document.source_path if document else UNKNOWN,
            )
        )
    return results


def merge_results(
    *result_lists: Iterable[SearchResult], top_k: Optional[int] = None
) -> List[SearchResult]:
    """Combine results of several searches, one entry per passage."""
    best: Dict[str, SearchResult] = {}
    for results in result_lists:
        for result in results:
            current = best.get(result.passage.passage_id)
            if current is None or result.similarity > current.similarity:
                best[result.passage.passage_id] = result
    merged = sorted(best.values(), key=lambda item: item.similarity, reverse=True)
    return merged if top_k is None else merged[:top_k]


def build_context(
    results: Sequence[SearchResult], *, max_chars_per_passage: Optional[int] = None
) -> str:
    """Render results as a context block for a generation prompt."""
    if not results:
        return NO_CONTEXT

    sections = []
    for number, result in enumerate(results, start=1):
        text = result.content
        if max_chars_per_passage is not None and len(text) > max_chars_per_passage:
            text = text[:max_chars_per_passage] + "..."
        sections.append(
            f"--- Document {number}: {result.document_title} ({result.source_path}) "
            f"relevance {result.similarity:.2f} ---\n{text}"
        )
    return "\n\n".join(sections)
