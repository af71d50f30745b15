"""vectorsearch: a retrieval engine over the Qdrant vector database.

This package exposes one store, ``QdrantStore``, serving four search intents
(similarity, MMR, score threshold and hybrid dense + sparse) plus concurrent
batches of them, with uniform pagination and result shaping.
"""

from vectorsearch.context import SearchContext
from vectorsearch.errors import (
    AggregateSearchError,
    BackendFailureError,
    CanceledError,
    DeadlineExceededError,
    InvalidArgumentError,
    NotConnectedError,
    VectorSearchError,
)
from vectorsearch.store import QdrantStore
from vectorsearch.types import (
    BatchSearchResult,
    Document,
    FusionType,
    HybridSearchOptions,
    MMRSearchOptions,
    ScoreThresholdOptions,
    SearchOptions,
    SearchResult,
    SearchResultItem,
)


__all__ = [
    "AggregateSearchError",
    "BackendFailureError",
    "BatchSearchResult",
    "CanceledError",
    "DeadlineExceededError",
    "Document",
    "FusionType",
    "HybridSearchOptions",
    "InvalidArgumentError",
    "MMRSearchOptions",
    "NotConnectedError",
    "QdrantStore",
    "ScoreThresholdOptions",
    "SearchContext",
    "SearchOptions",
    "SearchResult",
    "SearchResultItem",
    "VectorSearchError",
]
