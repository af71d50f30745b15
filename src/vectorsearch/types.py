"""Option and result types for the retrieval engine.

Callers describe what they want with one of four intent option dataclasses
and receive a :class:`SearchResult`. The options are caller-owned and never
mutated by the engine; results are built per call and handed over to the
caller.

Intents:
    - SearchOptions: plain similarity search
    - MMRSearchOptions: similarity search diversified with Maximal Marginal
      Relevance
    - ScoreThresholdOptions: similarity search with a mandatory score floor
    - HybridSearchOptions: dense + sparse prefetches merged by a backend
      fusion operator

Usage:
    >>> from vectorsearch.types import SearchOptions
    >>> opts = SearchOptions(
    ...     collection_name="articles",
    ...     query_vector=embedding,
    ...     k=5,
    ...     include_content=True,
    ... )
    >>> result = store.search_similar(opts)
    >>> print(result.to_dict())
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from vectorsearch.errors import AggregateSearchError
from vectorsearch.utils.sparse import SparseInput


DEFAULT_LIMIT = 10
DEFAULT_MAX_RESULTS = 1000
DEFAULT_LAMBDA_MULT = 0.5
MIN_MMR_FETCH_K = 30
MAX_BATCH_CONCURRENCY = 50
DENSE_VECTOR_NAME = "dense"
SPARSE_VECTOR_NAME = "sparse"


class FusionType(str, Enum):
    """Backend fusion operators available to hybrid search."""

    RRF = "rrf"
    DBSF = "dbsf"

    @classmethod
    def parse(cls, value: Union["FusionType", str, None]) -> Optional["FusionType"]:
        """Parse a fusion type, returning None for unset or unknown values."""
        if value is None or value == "":
            return None
        if isinstance(value, FusionType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


@dataclass
class BaseSearchOptions:
    """Options shared by every search intent.

    Attributes:
        collection_name: Collection to search. Required.
        query_vector: Dense query embedding.
        k: Number of results when pagination is not used.
        filter: Metadata filter tree (see ``vectorsearch.filters``).
        page: 1-based page number; 0 disables pagination.
        page_size: Results per page.
        include_vector: Return each document's dense vector.
        include_metadata: Return payload fields as document metadata.
        include_content: Return the payload ``content`` field.
        fields: Payload fields to copy into metadata even when
            ``include_metadata`` is off.
        include_total: Fill ``total`` (best-effort approximate count).
        ef_search: HNSW ``ef`` for this query.
        num_probes: IVF probes; only toggles approximate search parameters
            since the backend has no IVF index.
        approximate: Force approximate (non-exact) search.
        timeout_ms: Per-call timeout in milliseconds.
        min_score: Minimum score; applied only when positive.
        max_results: Upper bound on candidates fetched (default 1000).
        vector_using: Named vector to search.
    """

    collection_name: str = ""
    query_vector: Optional[list[float]] = None
    k: int = 0
    filter: Optional[dict[str, Any]] = None
    page: int = 0
    page_size: int = 0
    include_vector: bool = False
    include_metadata: bool = False
    include_content: bool = False
    fields: list[str] = field(default_factory=list)
    include_total: bool = False
    ef_search: int = 0
    num_probes: int = 0
    approximate: bool = False
    timeout_ms: int = 0
    min_score: float = 0.0
    max_results: int = 0
    vector_using: str = ""

    @property
    def paginated(self) -> bool:
        """Whether page metadata should be computed for this request."""
        return self.page > 0 and self.page_size > 0

    @property
    def has_dense_query(self) -> bool:
        """Whether a non-empty dense query vector was supplied."""
        return self.query_vector is not None and len(self.query_vector) > 0


@dataclass
class SearchOptions(BaseSearchOptions):
    """Options for plain similarity search."""


@dataclass
class MMRSearchOptions(BaseSearchOptions):
    """Options for Maximal Marginal Relevance search.

    Attributes:
        fetch_k: Candidate pool size; defaults to ``max(3 * k, 30)``.
        lambda_mult: Relevance/diversity trade-off in (0, 1]; 1.0 is pure
            relevance. Non-positive values mean 0.5.
    """

    fetch_k: int = 0
    lambda_mult: float = 0.0


@dataclass
class ScoreThresholdOptions(BaseSearchOptions):
    """Options for similarity search with a mandatory score floor.

    Attributes:
        score_threshold: Minimum backend score, sent even when zero.
    """

    score_threshold: float = 0.0


@dataclass
class HybridSearchOptions(BaseSearchOptions):
    """Options for hybrid dense + sparse search.

    Attributes:
        query_sparse: Pre-computed sparse query in any format accepted by
            ``vectorsearch.utils.sparse.normalize_sparse``.
        sparse_using: Named sparse vector; defaults to ``"sparse"``.
        fusion_type: ``"rrf"`` (default) or ``"dbsf"``.
        vector_weight: Legacy weight; only selects RRF.
        keyword_weight: Legacy weight; only selects RRF.
    """

    query_sparse: SparseInput = None
    sparse_using: str = ""
    fusion_type: Union[FusionType, str, None] = None
    vector_weight: float = 0.0
    keyword_weight: float = 0.0


SearchIntent = Union[SearchOptions, MMRSearchOptions, ScoreThresholdOptions, HybridSearchOptions]


@dataclass
class Document:
    """A search hit projected out of a stored point."""

    id: str = ""
    content: str = ""
    vector: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "vector": list(self.vector),
            "metadata": dict(self.metadata),
        }


@dataclass
class SearchResultItem:
    """A document together with its backend score."""

    document: Document
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"document": self.document.to_dict(), "score": self.score}


@dataclass
class SearchResult:
    """Uniform result of every search intent.

    Pagination fields stay zero/False unless both ``page`` and ``page_size``
    were requested.

    Attributes:
        documents: Hits, by descending score (selection order for MMR).
        query_time_ms: Wall-clock time of the backend query.
        max_score: Highest score among the returned documents.
        min_score: Lowest score among the returned documents.
        page: Echo of the requested page.
        page_size: Echo of the requested page size.
        total: Candidate count, or approximate backend count when saturated.
        total_pages: ``ceil(total / page_size)``.
        has_next: More candidates exist beyond this page.
        has_previous: ``page > 1``.
        next_page: ``page + 1`` when ``has_next``.
        previous_page: ``page - 1`` when ``has_previous``.
    """

    documents: list[SearchResultItem] = field(default_factory=list)
    query_time_ms: int = 0
    max_score: float = 0.0
    min_score: float = 0.0
    page: int = 0
    page_size: int = 0
    total: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_previous: bool = False
    next_page: int = 0
    previous_page: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents": [item.to_dict() for item in self.documents],
            "query_time_ms": self.query_time_ms,
            "max_score": self.max_score,
            "min_score": self.min_score,
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
            "next_page": self.next_page,
            "previous_page": self.previous_page,
        }


@dataclass
class BatchSearchResult:
    """Positional results and errors of a batch search.

    ``results[i]`` is None exactly when ``errors[i]`` is set.
    """

    results: list[Optional[SearchResult]] = field(default_factory=list)
    errors: list[Optional[BaseException]] = field(default_factory=list)

    @property
    def failed_indices(self) -> list[int]:
        return [i for i, err in enumerate(self.errors) if err is not None]

    @property
    def ok(self) -> bool:
        return not self.failed_indices

    @property
    def aggregate_error(self) -> Optional[AggregateSearchError]:
        """An ``AggregateSearchError`` over all failures, or None."""
        failed = {i: err for i, err in enumerate(self.errors) if err is not None}
        if not failed:
            return None
        return AggregateSearchError(failed)

    def raise_for_errors(self) -> None:
        """Raise the aggregate error if any position failed."""
        error = self.aggregate_error
        if error is not None:
            raise error
