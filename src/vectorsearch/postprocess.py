"""Shape backend points into a :class:`SearchResult`.

Post-processing is the same for every intent once the candidate list is
final (after MMR selection, if any):

    1. Slice the requested page out of the over-fetched candidates.
    2. Compute the score range of the emitted documents.
    3. Project each point into a Document honouring the include flags.
    4. Fill pagination metadata and the optional total.

Point Projection:
    - ScoredPoint.id -> Document.id (string; falls back to payload["id"])
    - payload["content"] -> Document.content (only when requested)
    - payload minus id/content -> Document.metadata (include_metadata)
    - payload[field] for each requested field -> Document.metadata
    - dense vector -> Document.vector (include_vector); named vectors prefer
      vector_using, then "dense", then the first dense one
"""

import logging
import math
from typing import Any, Callable, Optional, Sequence

from qdrant_client.http.models import ScoredPoint

from vectorsearch.errors import VectorSearchError
from vectorsearch.types import (
    DENSE_VECTOR_NAME,
    BaseSearchOptions,
    Document,
    SearchResult,
    SearchResultItem,
)
from vectorsearch.utils.logging import LoggerFactory


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()

_RESERVED_PAYLOAD_KEYS = ("id", "content")


def coerce_id(value: Any) -> str:
    """Convert a point ID (int, UUID or string) to its string form."""
    if value is None:
        return ""
    return str(value)


def _as_dense(value: Any) -> Optional[list[float]]:
    if not isinstance(value, list) or not value:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return None
    return [float(v) for v in value]


def extract_dense_vector(vector: Any, preferred: Optional[str] = None) -> list[float]:
    """Pull a dense vector out of ``ScoredPoint.vector``.

    Args:
        vector: A plain list, a mapping of named vectors, or None.
        preferred: Name to try first for named vectors.

    Returns:
        The dense vector, or an empty list when none is present.
    """
    if vector is None:
        return []
    if not isinstance(vector, dict):
        return _as_dense(vector) or []

    for name in (preferred, DENSE_VECTOR_NAME):
        if name and name in vector:
            dense = _as_dense(vector[name])
            if dense is not None:
                return dense
    for value in vector.values():
        dense = _as_dense(value)
        if dense is not None:
            return dense
    return []


def point_to_document(point: ScoredPoint, opts: BaseSearchOptions) -> Document:
    """Project a scored point into a Document according to ``opts``."""
    payload = point.payload or {}

    doc_id = coerce_id(point.id)
    if not doc_id and "id" in payload:
        doc_id = coerce_id(payload["id"])

    content = ""
    if opts.include_content and payload.get("content") is not None:
        content = str(payload["content"])

    metadata: dict[str, Any] = {}
    if opts.include_metadata:
        metadata = {k: v for k, v in payload.items() if k not in _RESERVED_PAYLOAD_KEYS}
    for name in opts.fields:
        if name in payload:
            metadata[name] = payload[name]

    vector: list[float] = []
    if opts.include_vector:
        vector = extract_dense_vector(point.vector, opts.vector_using or None)

    return Document(id=doc_id, content=content, vector=vector, metadata=metadata)


def page_bounds(candidate_count: int, opts: BaseSearchOptions) -> tuple[int, int]:
    """Slice bounds of the requested page, clamped to the candidates."""
    if not opts.paginated:
        return 0, candidate_count
    start = min((opts.page - 1) * opts.page_size, candidate_count)
    end = min(start + opts.page_size, candidate_count)
    return start, end


def score_bounds(points: Sequence[ScoredPoint], sorted_desc: bool = True) -> tuple[float, float]:
    """Return ``(max_score, min_score)`` of ``points``.

    Backend results are sorted by descending score, so the ends of the list
    are used directly. MMR selection order is not score order and needs a
    scan (``sorted_desc=False``).
    """
    if not points:
        return 0.0, 0.0
    if sorted_desc:
        return float(points[0].score), float(points[-1].score)
    scores = [float(p.score) for p in points]
    return max(scores), min(scores)


def build_search_result(
    points: Sequence[ScoredPoint],
    opts: BaseSearchOptions,
    query_time_ms: int,
    max_results: int,
    sorted_desc: bool = True,
    count_fn: Optional[Callable[[], int]] = None,
) -> SearchResult:
    """Assemble the final result from the candidate list.

    Args:
        points: Final candidates (backend order, or MMR selection order).
        opts: Options of the search.
        query_time_ms: Elapsed time of the backend query.
        max_results: Candidate cap of the query; reaching it triggers the
            approximate count when a total is requested.
        sorted_desc: Whether ``points`` are in descending score order.
        count_fn: Best-effort approximate count of matching points.

    Returns:
        The populated SearchResult.
    """
    start, end = page_bounds(len(points), opts)
    page = list(points[start:end])
    max_score, min_score = score_bounds(page, sorted_desc=sorted_desc)

    result = SearchResult(
        documents=[
            SearchResultItem(document=point_to_document(p, opts), score=float(p.score))
            for p in page
        ],
        query_time_ms=query_time_ms,
        max_score=max_score,
        min_score=min_score,
    )

    if opts.include_total:
        result.total = len(points)
        if count_fn is not None and len(points) >= max_results:
            try:
                result.total = count_fn()
            except VectorSearchError as e:
                logger.warning("Failed to count points in '%s': %s", opts.collection_name, e)

    if opts.paginated:
        result.page = opts.page
        result.page_size = opts.page_size
        result.has_next = opts.page * opts.page_size < len(points)
        result.has_previous = opts.page > 1
        if result.has_next:
            result.next_page = opts.page + 1
        if result.has_previous:
            result.previous_page = opts.page - 1
        if result.total > 0:
            result.total_pages = math.ceil(result.total / opts.page_size)

    return result
