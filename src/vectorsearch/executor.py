"""Backend calls with deadline propagation and error wrapping.

Every call checks the search context before going out and again after the
response arrives: a cancelled or expired context discards the response. The
remaining deadline is also handed to the client as its request timeout, so a
hung request cannot outlive the caller's budget by more than a second.
"""

import logging
import math
import time
from typing import Any, Optional

from qdrant_client.http import models

from vectorsearch.context import SearchContext
from vectorsearch.errors import BackendFailureError, CanceledError, DeadlineExceededError
from vectorsearch.planner import QueryRequest
from vectorsearch.utils.logging import LoggerFactory


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()


def client_timeout(ctx: SearchContext) -> Optional[int]:
    """Remaining deadline in whole seconds for the client, at least 1."""
    remaining = ctx.remaining()
    if remaining is None:
        return None
    return max(1, math.ceil(remaining))


def _wrap(ctx: SearchContext, operation: str, error: Exception) -> Exception:
    if ctx.cancelled:
        return CanceledError()
    if ctx.expired:
        return DeadlineExceededError(f"deadline exceeded while trying to {operation}")
    return BackendFailureError(operation, str(error))


def execute_query(
    client: Any,
    request: QueryRequest,
    ctx: SearchContext,
    operation: str = "perform search",
) -> tuple[list[models.ScoredPoint], int]:
    """Run a planned query.

    Args:
        client: Snapshot of the store's QdrantClient.
        request: Planned request.
        ctx: Context already carrying the per-call timeout.
        operation: Descriptor used in error messages.

    Returns:
        The scored points in backend order and the elapsed milliseconds.

    Raises:
        CanceledError: The context was cancelled.
        DeadlineExceededError: The deadline passed.
        BackendFailureError: The backend call failed.
    """
    ctx.raise_if_done()
    start = time.perf_counter()
    try:
        response = client.query_points(**request.to_kwargs(), timeout=client_timeout(ctx))
    except Exception as e:
        raise _wrap(ctx, operation, e) from e
    ctx.raise_if_done()

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    points = list(response.points)
    logger.debug(
        "%s on '%s' returned %d points in %d ms",
        operation,
        request.collection_name,
        len(points),
        elapsed_ms,
    )
    return points, elapsed_ms


def execute_count(
    client: Any,
    collection_name: str,
    count_filter: Optional[models.Filter],
    ctx: SearchContext,
) -> int:
    """Approximate number of points matching ``count_filter``."""
    ctx.raise_if_done()
    try:
        result = client.count(
            collection_name=collection_name,
            count_filter=count_filter,
            exact=False,
            timeout=client_timeout(ctx),
        )
    except Exception as e:
        raise _wrap(ctx, "count points", e) from e
    ctx.raise_if_done()
    return int(result.count)


def fetch_vector_names(client: Any, collection_name: str, ctx: SearchContext) -> list[str]:
    """Named dense vectors of a collection, in configuration order.

    Single-vector collections yield an empty list.
    """
    ctx.raise_if_done()
    try:
        info = client.get_collection(collection_name=collection_name)
    except Exception as e:
        raise _wrap(ctx, "get collection info", e) from e

    params = getattr(getattr(info, "config", None), "params", None)
    vectors = getattr(params, "vectors", None)
    if isinstance(vectors, dict):
        return list(vectors.keys())
    return []
