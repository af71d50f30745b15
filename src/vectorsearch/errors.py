"""Exceptions raised by the retrieval engine.

Every error surfaced to callers derives from :class:`VectorSearchError`. The
concrete classes also inherit the closest builtin exception so callers can
catch them either way (``InvalidArgumentError`` is a ``ValueError``,
``DeadlineExceededError`` is a ``TimeoutError`` and so on).
"""

from typing import Mapping, Optional


class VectorSearchError(Exception):
    """Base exception for vectorsearch operations."""


class InvalidArgumentError(VectorSearchError, ValueError):
    """Raised when search options are missing or malformed.

    The message is meant to be shown to the caller verbatim.
    """


class NotConnectedError(VectorSearchError, ConnectionError):
    """Raised when the store has no live backend client."""

    def __init__(self, message: str = "not connected to Qdrant server") -> None:
        super().__init__(message)


class BackendFailureError(VectorSearchError):
    """Raised when the ANN backend rejects or fails a request.

    Attributes:
        operation: Short description of the failed operation.
        detail: The backend's own error message, unchanged.
    """

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"failed to {operation}: {detail}")


class DeadlineExceededError(VectorSearchError, TimeoutError):
    """Raised when the caller deadline or per-call timeout expires."""

    def __init__(self, message: str = "search deadline exceeded") -> None:
        super().__init__(message)


class CanceledError(VectorSearchError):
    """Raised when the caller cancels the search context."""

    def __init__(self, message: str = "search canceled") -> None:
        super().__init__(message)


class AggregateSearchError(VectorSearchError):
    """Batch-level error summarizing every failed position.

    Attributes:
        errors: Mapping of batch index to the exception raised at that index.
    """

    def __init__(self, errors: Mapping[int, BaseException]) -> None:
        self.errors = dict(sorted(errors.items()))
        summary = "; ".join(f"search {i}: {e}" for i, e in self.errors.items())
        super().__init__(f"batch search completed with errors: {summary}")

    @property
    def messages(self) -> dict[int, str]:
        """Per-index error messages."""
        return {i: str(e) for i, e in self.errors.items()}

    def get(self, index: int) -> Optional[BaseException]:
        return self.errors.get(index)
