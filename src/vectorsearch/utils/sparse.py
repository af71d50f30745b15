"""Sparse query vector normalization.

Hybrid search accepts a pre-computed sparse query (BM25, SPLADE, TF-IDF...)
in whichever shape the caller's encoder produced it. Everything is normalized
into a Haystack ``SparseEmbedding`` on the way in and converted to a Qdrant
``SparseVector`` on the way out.

Supported Formats:
    - Haystack: SparseEmbedding(indices=[...], values=[...])
    - Pinecone-style: {"indices": [...], "values": [...]}
    - Milvus-style: {index: value}
    - Qdrant: SparseVector(indices=[...], values=[...])

Usage:
    >>> from vectorsearch.utils.sparse import normalize_sparse, to_qdrant_sparse
    >>> sparse = normalize_sparse({"indices": [3, 17], "values": [0.4, 1.2]})
    >>> to_qdrant_sparse(sparse)
    SparseVector(indices=[3, 17], values=[0.4, 1.2])
"""

from typing import Any, Dict, List, Optional, Union, cast

from haystack.dataclasses import SparseEmbedding
from qdrant_client.http.models import SparseVector


SparseInput = Union[SparseEmbedding, SparseVector, Dict[int, float], Dict[str, List], None]


def normalize_sparse(sparse: SparseInput) -> Optional[SparseEmbedding]:
    """Normalize any supported sparse format to Haystack SparseEmbedding.

    Args:
        sparse: Sparse vector in any supported format, or None.

    Returns:
        SparseEmbedding or None.

    Raises:
        TypeError: If the input is not a recognized sparse format.

    Example:
        >>> normalize_sparse({1: 0.5, 5: 0.8})
        SparseEmbedding(indices=[1, 5], values=[0.5, 0.8])
    """
    if sparse is None:
        return None

    if isinstance(sparse, SparseEmbedding):
        return sparse

    if isinstance(sparse, SparseVector):
        return SparseEmbedding(indices=list(sparse.indices), values=list(sparse.values))

    if isinstance(sparse, dict):
        if "indices" in sparse and "values" in sparse:
            pinecone_sparse = cast(Dict[str, List], sparse)
            return SparseEmbedding(
                indices=list(pinecone_sparse["indices"]),
                values=list(pinecone_sparse["values"]),
            )
        # Milvus format: {index: value}
        return SparseEmbedding(indices=list(sparse.keys()), values=list(sparse.values()))

    raise TypeError(f"Unsupported sparse embedding format: {type(sparse)}")


def sparse_components(sparse: SparseInput) -> tuple[list, list]:
    """Return the raw ``(indices, values)`` lists of a sparse input.

    Unlike :func:`normalize_sparse` this does not build a SparseEmbedding, so
    malformed inputs (e.g. mismatched lengths) can still be inspected.

    Raises:
        TypeError: If the input is not a recognized sparse format.
    """
    if sparse is None:
        return [], []
    if isinstance(sparse, (SparseEmbedding, SparseVector)):
        return list(sparse.indices), list(sparse.values)
    if isinstance(sparse, dict):
        if "indices" in sparse and "values" in sparse:
            return list(sparse["indices"] or []), list(sparse["values"] or [])
        return list(sparse.keys()), list(sparse.values())
    raise TypeError(f"Unsupported sparse embedding format: {type(sparse)}")


def sparse_problem(sparse: SparseInput) -> Optional[str]:
    """Describe why a sparse query cannot be dispatched, or return None.

    A sparse query with no indices and no values is reported as ``"empty"``
    so callers can decide whether it simply counts as absent.
    """
    try:
        indices, values = sparse_components(sparse)
    except TypeError as e:
        return str(e)
    if not indices and not values:
        return "empty"
    if len(indices) != len(values):
        return (
            "sparse vector indices and values must have equal length, "
            f"got {len(indices)} and {len(values)}"
        )
    if any(not isinstance(i, int) or isinstance(i, bool) or i < 0 for i in indices):
        return "sparse vector indices must be non-negative integers"
    return None


def to_qdrant_sparse(sparse: SparseEmbedding) -> SparseVector:
    """Convert SparseEmbedding to a Qdrant SparseVector."""
    return SparseVector(
        indices=list(sparse.indices),
        values=[float(v) for v in sparse.values],
    )
