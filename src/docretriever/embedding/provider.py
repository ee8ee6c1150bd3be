"""Contract shared by embedding providers."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from docretriever.errors import EmbeddingProviderError

Vector = List[float]


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into fixed-dimension vectors.

    Implementations raise :class:`EmbeddingProviderError` on any failure and
    never return placeholder vectors.
    """

    def embed(self, text: str, model: Optional[str] = None) -> Vector: ...

    def embed_batch(
        self, texts: Sequence[str], model: Optional[str] = None
    ) -> List[Vector]: ...


def check_vectors(
    vectors: Sequence[Sequence[float]], expected: int, *, provider: str
) -> List[Vector]:
    """Validate a provider batch and convert it to plain float lists."""
    if len(vectors) != expected:
        raise EmbeddingProviderError(
            f"Expected {expected} embeddings, got {len(vectors)}", provider=provider
        )
    converted = [[float(x) for x in vector] for vector in vectors]
    dimensions = {len(vector) for vector in converted}
    if 0 in dimensions:
        raise EmbeddingProviderError("Provider returned an empty embedding", provider=provider)
    if len(dimensions) > 1:
        raise EmbeddingProviderError(
            f"Provider returned embeddings of mixed dimensions {sorted(dimensions)}",
            provider=provider,
        )
    return converted
