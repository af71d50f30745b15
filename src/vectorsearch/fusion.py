"""Hybrid search assembly: prefetch sub-queries and fusion operator choice.

Hybrid search leaves the actual merging to Qdrant's Query API. This module
builds at most two prefetches, one dense and one sparse, each routed to its
named vector, and picks the fusion operator applied over them.

Fusion Strategies:
    Reciprocal Rank Fusion (RRF):
        score = sum(1 / (k + rank)) over the prefetch rankings. Rank based,
        so it needs no score calibration. The default.
    Distribution-Based Score Fusion (DBSF):
        Normalizes each prefetch's scores by their distribution before
        summing them.

Legacy ``vector_weight`` / ``keyword_weight`` options are accepted but only
select RRF: the backend fusion operators take no per-prefetch weights, and
weighted fusion is not re-implemented client-side.
"""

import logging
from typing import Optional

from qdrant_client.http import models

from vectorsearch.errors import InvalidArgumentError
from vectorsearch.types import SPARSE_VECTOR_NAME, FusionType, HybridSearchOptions
from vectorsearch.utils.logging import LoggerFactory
from vectorsearch.utils.sparse import normalize_sparse, sparse_problem, to_qdrant_sparse


logger_factory = LoggerFactory(logger_name=__name__, log_level=logging.INFO)
logger = logger_factory.get_logger()

#: Prefetches fetch this many times the final limit to give fusion room.
PREFETCH_MULTIPLIER = 2

_BACKEND_FUSION = {
    FusionType.RRF: models.Fusion.RRF,
    FusionType.DBSF: models.Fusion.DBSF,
}


def resolve_fusion(opts: HybridSearchOptions) -> models.Fusion:
    """Map the requested fusion type onto the backend operator."""
    fusion = FusionType.parse(opts.fusion_type)
    if fusion is None:
        if opts.fusion_type:
            logger.warning("Unknown fusion type %r, using RRF", opts.fusion_type)
        elif opts.vector_weight > 0 or opts.keyword_weight > 0:
            logger.debug(
                "Legacy weights (vector=%.2f, keyword=%.2f) select RRF",
                opts.vector_weight,
                opts.keyword_weight,
            )
        fusion = FusionType.RRF
    return _BACKEND_FUSION[fusion]


def build_prefetches(
    opts: HybridSearchOptions,
    dense_using: Optional[str],
    limit: int,
    query_filter: Optional[models.Filter] = None,
) -> list[models.Prefetch]:
    """Build the dense and sparse prefetches of a hybrid query.

    Args:
        opts: Validated hybrid options.
        dense_using: Resolved named vector for the dense prefetch.
        limit: Effective limit of the outer query.
        query_filter: Filter applied inside each prefetch.

    Returns:
        One or two prefetches, dense first.

    Raises:
        InvalidArgumentError: If neither a dense nor a sparse query is usable.
    """
    prefetch_limit = limit * PREFETCH_MULTIPLIER
    prefetches: list[models.Prefetch] = []

    if opts.has_dense_query:
        prefetches.append(
            models.Prefetch(
                query=[float(v) for v in opts.query_vector],
                using=dense_using,
                filter=query_filter,
                limit=prefetch_limit,
            )
        )

    if sparse_problem(opts.query_sparse) is None:
        sparse = normalize_sparse(opts.query_sparse)
        prefetches.append(
            models.Prefetch(
                query=to_qdrant_sparse(sparse),
                using=opts.sparse_using or SPARSE_VECTOR_NAME,
                filter=query_filter,
                limit=prefetch_limit,
            )
        )

    if not prefetches:
        raise InvalidArgumentError(
            "at least one of query_vector or query_sparse must be provided"
        )
    return prefetches
