"""Fail-fast precondition checks for search intents.

Validation runs before any backend I/O. Argument problems raise
``InvalidArgumentError``; the connection check is left to the store, which
raises ``NotConnectedError`` while snapshotting its client.
"""

from typing import Any, Optional

from vectorsearch.errors import InvalidArgumentError
from vectorsearch.types import (
    BaseSearchOptions,
    HybridSearchOptions,
    MMRSearchOptions,
    ScoreThresholdOptions,
    SearchOptions,
)
from vectorsearch.utils.sparse import sparse_problem


_INTENT_LABELS = {
    SearchOptions: "search",
    MMRSearchOptions: "MMR search",
    ScoreThresholdOptions: "score threshold search",
    HybridSearchOptions: "hybrid search",
}


def _require_options(opts: Any, expected: type) -> BaseSearchOptions:
    label = _INTENT_LABELS[expected]
    if opts is None:
        raise InvalidArgumentError(f"{label} options cannot be nil")
    if not isinstance(opts, expected):
        raise InvalidArgumentError(
            f"{label} expects {expected.__name__}, got {type(opts).__name__}"
        )
    if not opts.collection_name:
        raise InvalidArgumentError("collection name is required")
    return opts


def _validate_dense(opts: Any, expected: type) -> None:
    checked = _require_options(opts, expected)
    if not checked.has_dense_query:
        raise InvalidArgumentError("query vector is required")


def validate_similar(opts: Optional[SearchOptions]) -> None:
    _validate_dense(opts, SearchOptions)


def validate_mmr(opts: Optional[MMRSearchOptions]) -> None:
    _validate_dense(opts, MMRSearchOptions)


def validate_score_threshold(opts: Optional[ScoreThresholdOptions]) -> None:
    _validate_dense(opts, ScoreThresholdOptions)


def validate_hybrid(opts: Optional[HybridSearchOptions]) -> None:
    """Validate hybrid options.

    At least one of a non-empty dense query or a well-formed sparse query is
    required. A sparse query that is present but malformed is rejected even
    when a dense query is also given.
    """
    checked = _require_options(opts, HybridSearchOptions)
    problem = sparse_problem(checked.query_sparse)
    if problem is not None and problem != "empty":
        raise InvalidArgumentError(f"invalid sparse query: {problem}")
    if not checked.has_dense_query and problem == "empty":
        raise InvalidArgumentError(
            "at least one of query_vector or query_sparse must be provided"
        )
