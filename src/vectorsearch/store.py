"""Qdrant-backed retrieval engine.

``QdrantStore`` is the caller-facing entry point. It owns the backend client
and turns each search intent into exactly one ``query_points`` call:

    validate -> snapshot client -> resolve named vector -> plan -> execute
             -> (MMR selection) -> post-process

Search Intents:
    - search_similar: top-k by similarity, with optional filter and paging
    - search_mmr: over-fetch a candidate pool, diversify with MMR
    - search_with_score_threshold: similarity search with a mandatory score
      floor; unknown vector names fall back to the default vector
    - search_hybrid: dense and sparse prefetches merged by RRF or DBSF
    - search_batch: heterogeneous intents fanned out concurrently

Concurrency:
    Searches may run from any number of threads. A reader/writer lock guards
    only connection transitions: every search takes the read side just long
    enough to copy the client reference, so no lock is held across network
    I/O.

Example:
    >>> store = QdrantStore(config={"qdrant": {"url": "http://localhost:6333"}})
    >>> store.connect()
    >>> result = store.search_similar(
    ...     SearchOptions(collection_name="articles", query_vector=emb, k=5)
    ... )
    >>> store.disconnect()
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.http import models

from vectorsearch.batch import run_batch
from vectorsearch.context import SearchContext
from vectorsearch.errors import BackendFailureError, NotConnectedError
from vectorsearch.executor import execute_count, execute_query, fetch_vector_names
from vectorsearch.mmr import select_mmr_results
from vectorsearch.planner import (
    effective_limit,
    max_results,
    plan_hybrid,
    plan_mmr,
    plan_score_threshold,
    plan_similar,
    resolve_vector_name,
)
from vectorsearch.postprocess import build_search_result
from vectorsearch.types import (
    MAX_BATCH_CONCURRENCY,
    BaseSearchOptions,
    BatchSearchResult,
    HybridSearchOptions,
    MMRSearchOptions,
    ScoreThresholdOptions,
    SearchIntent,
    SearchOptions,
    SearchResult,
)
from vectorsearch.utils.config import load_config, resolve_env_vars
from vectorsearch.utils.logging import BackendLogBridge, LoggerFactory
from vectorsearch.validator import (
    validate_hybrid,
    validate_mmr,
    validate_score_threshold,
    validate_similar,
)


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()


class _ReadWriteLock:
    """Many readers or one writer, writers preferred once waiting."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class QdrantStore:
    """Vector search facade over a Qdrant server.

    Attributes:
        config: Resolved configuration dictionary with environment variables.
        url: Qdrant server URL (defaults to localhost:6333).
        api_key: Authentication token for cloud deployments.
        timeout: Default client request timeout in seconds.
        prefer_grpc: Whether the client should talk gRPC.
        max_batch_concurrency: Upper bound on concurrent searches in a batch.

    Example:
        Initialize from config file::

            store = QdrantStore(config_path="config/store.yaml")
            store.connect()

        Wrap an existing client (connected immediately)::

            store = QdrantStore(client=QdrantClient(":memory:"))
    """

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        config_path: Optional[str] = None,
        client: Optional[QdrantClient] = None,
        log_sink: Optional[logging.Logger] = None,
    ):
        """Initialize the store configuration.

        Configuration priority: config_path > config > empty dict.

        Args:
            config: Configuration dictionary with ``qdrant`` and ``search``
                sections.
            config_path: Path to a YAML file with the same structure.
            client: Ready client to use; the store starts connected.
            log_sink: Logger receiving forwarded backend client records.
                Defaults to this module's logger.
        """
        if config_path:
            self.config = load_config(config_path)
        elif config:
            self.config = resolve_env_vars(config)
        else:
            self.config = {}

        qdrant_config = self.config.get("qdrant", {}) or {}
        search_config = self.config.get("search", {}) or {}

        self.url = qdrant_config.get("url") or os.environ.get(
            "QDRANT_URL", "http://localhost:6333"
        )
        self.api_key = qdrant_config.get("api_key") or os.environ.get("QDRANT_API_KEY")
        self.timeout = int(qdrant_config.get("timeout") or 60)
        self.prefer_grpc = bool(qdrant_config.get("prefer_grpc", False))
        self.max_batch_concurrency = min(
            int(search_config.get("max_batch_concurrency") or MAX_BATCH_CONCURRENCY),
            MAX_BATCH_CONCURRENCY,
        )

        self._lock = _ReadWriteLock()
        self._client: Optional[Any] = None
        self._connected = False
        self._log_bridge = BackendLogBridge(log_sink or logger)

        if client is not None:
            self.connect(client)

    # Connection lifecycle

    def connect(self, client: Optional[Any] = None) -> None:
        """Create (or adopt) the backend client. A no-op when connected."""
        with self._lock.write():
            if self._connected:
                return
            self._client = client if client is not None else QdrantClient(
                url=self.url,
                api_key=self.api_key,
                timeout=self.timeout,
                prefer_grpc=self.prefer_grpc,
            )
            self._connected = True
        self._log_bridge.attach()
        logger.info(
            "Connected QdrantStore to %s", self.url if client is None else "injected client"
        )

    def disconnect(self) -> None:
        """Drop and close the backend client."""
        with self._lock.write():
            client, self._client = self._client, None
            was_connected, self._connected = self._connected, False
        if client is not None:
            client.close()
        self._log_bridge.detach()
        if was_connected:
            logger.info("Disconnected QdrantStore")

    @property
    def is_connected(self) -> bool:
        with self._lock.read():
            return self._connected

    def snapshot_client(self) -> Any:
        """Return the current client reference.

        Raises:
            NotConnectedError: If the store is not connected.
        """
        with self._lock.read():
            if not self._connected or self._client is None:
                raise NotConnectedError()
            return self._client

    # Collection introspection

    def get_vector_names(
        self, collection_name: str, ctx: Optional[SearchContext] = None
    ) -> list[str]:
        """Named dense vectors of ``collection_name`` (empty for a single vector).

        Raises:
            NotConnectedError: If the store is not connected.
            BackendFailureError: If the collection info cannot be fetched.
        """
        client = self.snapshot_client()
        return fetch_vector_names(client, collection_name, ctx or SearchContext.background())

    def _lookup_vector_names(
        self, client: Any, collection_name: str, ctx: SearchContext
    ) -> Optional[list[str]]:
        try:
            return fetch_vector_names(client, collection_name, ctx)
        except BackendFailureError as e:
            logger.debug("Vector name lookup failed for '%s': %s", collection_name, e)
            return None

    # Search intents

    @staticmethod
    def _call_context(opts: BaseSearchOptions, ctx: Optional[SearchContext]) -> SearchContext:
        return (ctx or SearchContext.background()).with_timeout(opts.timeout_ms)

    def _finish(
        self,
        client: Any,
        points: Sequence[models.ScoredPoint],
        opts: BaseSearchOptions,
        elapsed_ms: int,
        ctx: SearchContext,
        query_filter: Optional[models.Filter],
        sorted_desc: bool = True,
    ) -> SearchResult:
        def count() -> int:
            return execute_count(client, opts.collection_name, query_filter, ctx)

        return build_search_result(
            points,
            opts,
            elapsed_ms,
            max_results=max_results(opts),
            sorted_desc=sorted_desc,
            count_fn=count,
        )

    def search_similar(
        self, opts: SearchOptions, ctx: Optional[SearchContext] = None
    ) -> SearchResult:
        """Top-k similarity search.

        Args:
            opts: Similarity search options.
            ctx: Caller context carrying deadline and cancellation.

        Returns:
            Documents by descending score with pagination metadata.

        Raises:
            InvalidArgumentError: If the options are invalid.
            NotConnectedError: If the store is not connected.
            BackendFailureError: If the backend query fails.
            DeadlineExceededError: If the deadline passes.
            CanceledError: If ``ctx`` is cancelled.
        """
        validate_similar(opts)
        client = self.snapshot_client()
        call_ctx = self._call_context(opts, ctx)

        names = self._lookup_vector_names(client, opts.collection_name, call_ctx)
        using = resolve_vector_name(opts.vector_using, names, opts.collection_name)
        request = plan_similar(opts, using)
        logger.debug(
            "Similarity search on '%s' (using=%s, limit=%d)",
            opts.collection_name,
            using,
            request.limit,
        )

        points, elapsed_ms = execute_query(client, request, call_ctx, "perform search")
        return self._finish(client, points, opts, elapsed_ms, call_ctx, request.query_filter)

    def search_mmr(
        self, opts: MMRSearchOptions, ctx: Optional[SearchContext] = None
    ) -> SearchResult:
        """Diversified search with Maximal Marginal Relevance.

        Fetches ``fetch_k`` candidates with their vectors, greedily selects the
        effective limit of them, then pages the selection.
        """
        validate_mmr(opts)
        client = self.snapshot_client()
        call_ctx = self._call_context(opts, ctx)

        names = self._lookup_vector_names(client, opts.collection_name, call_ctx)
        using = resolve_vector_name(opts.vector_using, names, opts.collection_name)
        request = plan_mmr(opts, using)
        k = effective_limit(opts)
        logger.debug(
            "MMR search on '%s' (using=%s, fetch_k=%d, k=%d, lambda=%.2f)",
            opts.collection_name,
            using,
            request.limit,
            k,
            opts.lambda_mult,
        )

        candidates, elapsed_ms = execute_query(client, request, call_ctx, "perform MMR search")
        selected = select_mmr_results(candidates, k, opts.lambda_mult, using)
        return self._finish(
            client,
            selected,
            opts,
            elapsed_ms,
            call_ctx,
            request.query_filter,
            sorted_desc=False,
        )

    def search_with_score_threshold(
        self, opts: ScoreThresholdOptions, ctx: Optional[SearchContext] = None
    ) -> SearchResult:
        """Similarity search returning only points scoring at least the threshold.

        An unknown ``vector_using`` falls back to the collection's default
        vector with a warning instead of failing.
        """
        validate_score_threshold(opts)
        client = self.snapshot_client()
        call_ctx = self._call_context(opts, ctx)

        names = self._lookup_vector_names(client, opts.collection_name, call_ctx)
        using = resolve_vector_name(
            opts.vector_using, names, opts.collection_name, forgiving=True
        )
        request = plan_score_threshold(opts, using)
        logger.debug(
            "Score threshold search on '%s' (using=%s, threshold=%.4f)",
            opts.collection_name,
            using,
            opts.score_threshold,
        )

        points, elapsed_ms = execute_query(
            client, request, call_ctx, "perform score threshold search"
        )
        return self._finish(client, points, opts, elapsed_ms, call_ctx, request.query_filter)

    def search_hybrid(
        self, opts: HybridSearchOptions, ctx: Optional[SearchContext] = None
    ) -> SearchResult:
        """Hybrid dense + sparse search fused on the backend."""
        validate_hybrid(opts)
        client = self.snapshot_client()
        call_ctx = self._call_context(opts, ctx)

        dense_using = None
        if opts.has_dense_query:
            names = self._lookup_vector_names(client, opts.collection_name, call_ctx)
            dense_using = resolve_vector_name(opts.vector_using, names, opts.collection_name)
        request = plan_hybrid(opts, dense_using)
        logger.debug(
            "Hybrid search on '%s' (%d prefetches, fusion=%s, limit=%d)",
            opts.collection_name,
            len(request.prefetch or []),
            request.query.fusion,
            request.limit,
        )

        points, elapsed_ms = execute_query(client, request, call_ctx, "perform hybrid search")
        return self._finish(client, points, opts, elapsed_ms, call_ctx, request.query_filter)

    def search_batch(
        self,
        options: Sequence[SearchIntent],
        ctx: Optional[SearchContext] = None,
    ) -> BatchSearchResult:
        """Run several searches of any intent concurrently.

        See :func:`vectorsearch.batch.run_batch`.
        """
        return run_batch(self, options, ctx, max_concurrency=self.max_batch_concurrency)
