"""Concurrent execution of heterogeneous search intents.

Each element of a batch is dispatched on its exact option type to the
matching store operation and run on a worker thread. Every search runs to
completion; one failure never cancels the others. Results and errors keep the
position of their input, and the failures are summarized by
``BatchSearchResult.aggregate_error``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Optional, Sequence

from vectorsearch.context import SearchContext
from vectorsearch.errors import InvalidArgumentError
from vectorsearch.types import (
    MAX_BATCH_CONCURRENCY,
    BatchSearchResult,
    HybridSearchOptions,
    MMRSearchOptions,
    ScoreThresholdOptions,
    SearchIntent,
    SearchOptions,
    SearchResult,
)
from vectorsearch.utils.logging import LoggerFactory


if TYPE_CHECKING:
    from vectorsearch.store import QdrantStore


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()

_HANDLERS = {
    SearchOptions: "search_similar",
    MMRSearchOptions: "search_mmr",
    ScoreThresholdOptions: "search_with_score_threshold",
    HybridSearchOptions: "search_hybrid",
}


def dispatch(store: "QdrantStore", opts: SearchIntent, ctx: SearchContext) -> SearchResult:
    """Run one intent on the store operation registered for its exact type."""
    handler = _HANDLERS.get(type(opts))
    if handler is None:
        raise InvalidArgumentError(
            f"unsupported search options type: {type(opts).__name__}"
        )
    return getattr(store, handler)(opts, ctx)


def run_batch(
    store: "QdrantStore",
    options: Sequence[Optional[SearchIntent]],
    ctx: Optional[SearchContext] = None,
    max_concurrency: int = MAX_BATCH_CONCURRENCY,
) -> BatchSearchResult:
    """Run a batch of searches concurrently.

    Args:
        store: Store whose operations serve each intent.
        options: Intents to run, in any mix of types.
        ctx: Batch context; its cancellation and deadline reach every search.
        max_concurrency: Upper bound on worker threads, never above
            ``MAX_BATCH_CONCURRENCY``.

    Returns:
        Positional results and errors; ``results[i]`` is None exactly when
        ``errors[i]`` is set.

    Raises:
        NotConnectedError: If the store is not connected.
        InvalidArgumentError: If any element is None. Nothing runs.
    """
    if not options:
        return BatchSearchResult()

    store.snapshot_client()
    for i, opts in enumerate(options):
        if opts is None:
            raise InvalidArgumentError(f"search options at index {i} cannot be nil")

    ctx = ctx or SearchContext.background()
    results: list[Optional[SearchResult]] = [None] * len(options)
    errors: list[Optional[BaseException]] = [None] * len(options)

    workers = min(len(options), max(1, min(max_concurrency, MAX_BATCH_CONCURRENCY)))
    logger.debug("Running batch of %d searches on %d workers", len(options), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(dispatch, store, opts, ctx): i
            for i, opts in enumerate(options)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                results[index] = future.result()
            except Exception as e:
                errors[index] = e
                logger.debug("Search %d in batch failed: %s", index, e)

    batch = BatchSearchResult(results=results, errors=errors)
    if not batch.ok:
        logger.warning(
            "Batch search finished with %d of %d searches failed",
            len(batch.failed_indices),
            len(options),
        )
    return batch
