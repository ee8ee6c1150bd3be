"""Exceptions raised by the retrieval engine."""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for ordinary operational failures of the engine."""


class InputValidationError(RetrievalError):
    """Input rejected before any work was done."""


class TextTooLargeError(InputValidationError):
    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            f"Text too large for chunking: {length} characters (maximum {limit})"
        )
        self.length = length
        self.limit = limit


class TooManyChunksError(InputValidationError):
    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Too many chunks (more than {limit}); check the chunk size configuration"
        )
        self.limit = limit


class DimensionMismatchError(InputValidationError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class EmbeddingProviderError(RetrievalError):
    """
    The embedding provider could not produce vectors.

    Raised when the provider is unreachable, times out, answers with an error
    status or returns a response that does not match the expected schema.
    """

    def __init__(
        self, message: str, provider: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class IndexPersistenceError(RetrievalError):
    """Writing or removing a persisted index failed."""


class ConfigError(RetrievalError):
    """Configuration value missing or out of range."""
