"""Turn validated search options into a single backend query request.

The planner is pure: it never talks to the backend. Anything it needs to know
about the collection (its named vectors) is looked up by the caller first and
passed in.

Pagination is served by over-fetching: page ``p`` of size ``s`` asks the
backend for the top ``p * s`` points and the page is sliced client-side.
Backend offsets are never used because top-K results from an HNSW index are
not stable across offset queries.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from qdrant_client.http import models

from vectorsearch.errors import InvalidArgumentError
from vectorsearch.filters import build_filter
from vectorsearch.fusion import build_prefetches, resolve_fusion
from vectorsearch.types import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_RESULTS,
    DENSE_VECTOR_NAME,
    MIN_MMR_FETCH_K,
    BaseSearchOptions,
    HybridSearchOptions,
    MMRSearchOptions,
    ScoreThresholdOptions,
    SearchOptions,
)
from vectorsearch.utils.logging import LoggerFactory


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()


@dataclass
class QueryRequest:
    """One ``QdrantClient.query_points`` call."""

    collection_name: str
    limit: int
    query: Any = None
    using: Optional[str] = None
    prefetch: Optional[list[models.Prefetch]] = None
    query_filter: Optional[models.Filter] = None
    score_threshold: Optional[float] = None
    with_payload: bool = False
    with_vectors: bool = False
    search_params: Optional[models.SearchParams] = None

    def to_kwargs(self) -> dict[str, Any]:
        return {
            "collection_name": self.collection_name,
            "query": self.query,
            "using": self.using,
            "prefetch": self.prefetch,
            "query_filter": self.query_filter,
            "search_params": self.search_params,
            "limit": self.limit,
            "score_threshold": self.score_threshold,
            "with_payload": self.with_payload,
            "with_vectors": self.with_vectors,
        }


def max_results(opts: BaseSearchOptions) -> int:
    return opts.max_results if opts.max_results > 0 else DEFAULT_MAX_RESULTS


def effective_limit(opts: BaseSearchOptions) -> int:
    """Number of ranked points the query has to produce.

    ``page_size * max(page, 1)`` when a page size is given, else ``k``,
    defaulting to 10 and capped at ``max_results``.
    """
    limit = opts.k
    if opts.page_size > 0:
        limit = opts.page_size * max(opts.page, 1)
    if limit <= 0:
        limit = DEFAULT_LIMIT
    return min(limit, max_results(opts))


def mmr_fetch_k(opts: MMRSearchOptions) -> int:
    """Candidate pool size for MMR: ``fetch_k`` or ``max(3 * k, 30)``."""
    if opts.fetch_k > 0:
        return opts.fetch_k
    return max(3 * effective_limit(opts), MIN_MMR_FETCH_K)


def resolve_vector_name(
    requested: str,
    available: Optional[Sequence[str]],
    collection_name: str = "",
    forgiving: bool = False,
) -> Optional[str]:
    """Pick the named vector a query should run against.

    Args:
        requested: Caller's ``vector_using``; empty for none.
        available: Named dense vectors of the collection. An empty sequence
            means a single unnamed vector; None means the lookup failed, in
            which case the request is passed through unchecked.
        collection_name: Used in error messages.
        forgiving: Degrade an unknown requested name to the default choice
            instead of raising.

    Returns:
        The vector name, or None to let the backend use the unnamed vector.

    Raises:
        InvalidArgumentError: If ``requested`` is not a vector of the
            collection and ``forgiving`` is False.
    """
    if available is None:
        return requested or None
    if not available:
        return None
    if requested:
        if requested in available:
            return requested
        if not forgiving:
            raise InvalidArgumentError(
                f"vector '{requested}' not found in collection '{collection_name}'. "
                f"Available vectors: {list(available)}"
            )
        logger.warning(
            "Vector '%s' not found in collection '%s', falling back to default",
            requested,
            collection_name,
        )
    if DENSE_VECTOR_NAME in available:
        return DENSE_VECTOR_NAME
    return available[0]


def build_search_params(opts: BaseSearchOptions) -> Optional[models.SearchParams]:
    if not (opts.ef_search > 0 or opts.num_probes > 0 or opts.approximate):
        return None
    params: dict[str, Any] = {}
    if opts.ef_search > 0:
        params["hnsw_ef"] = opts.ef_search
    if opts.approximate:
        params["exact"] = False
    return models.SearchParams(**params)


def wants_payload(opts: BaseSearchOptions) -> bool:
    return bool(opts.include_metadata or opts.include_content or opts.fields)


def _dense_query(opts: BaseSearchOptions) -> list[float]:
    if not opts.has_dense_query:
        return []
    return [float(v) for v in opts.query_vector]


def _min_score(opts: BaseSearchOptions) -> Optional[float]:
    return float(opts.min_score) if opts.min_score > 0 else None


def _base_request(opts: BaseSearchOptions, using: Optional[str], limit: int) -> QueryRequest:
    return QueryRequest(
        collection_name=opts.collection_name,
        query=_dense_query(opts),
        using=using,
        limit=limit,
        query_filter=build_filter(opts.filter),
        with_payload=wants_payload(opts),
        with_vectors=opts.include_vector,
        search_params=build_search_params(opts),
    )


def plan_similar(opts: SearchOptions, using: Optional[str]) -> QueryRequest:
    request = _base_request(opts, using, effective_limit(opts))
    request.score_threshold = _min_score(opts)
    return request


def plan_mmr(opts: MMRSearchOptions, using: Optional[str]) -> QueryRequest:
    request = _base_request(opts, using, mmr_fetch_k(opts))
    request.score_threshold = _min_score(opts)
    request.with_vectors = True
    return request


def plan_score_threshold(opts: ScoreThresholdOptions, using: Optional[str]) -> QueryRequest:
    request = _base_request(opts, using, effective_limit(opts))
    request.score_threshold = float(opts.score_threshold)
    return request


def plan_hybrid(opts: HybridSearchOptions, dense_using: Optional[str]) -> QueryRequest:
    """Plan a fusion query over dense and/or sparse prefetches."""
    limit = effective_limit(opts)
    query_filter = build_filter(opts.filter)
    prefetch = build_prefetches(opts, dense_using, limit, query_filter)
    return QueryRequest(
        collection_name=opts.collection_name,
        query=models.FusionQuery(fusion=resolve_fusion(opts)),
        prefetch=prefetch,
        limit=limit,
        query_filter=query_filter,
        score_threshold=_min_score(opts),
        with_payload=wants_payload(opts),
        with_vectors=opts.include_vector,
        search_params=build_search_params(opts),
    )
