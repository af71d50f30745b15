"""Maximal Marginal Relevance (MMR) selection over backend candidates.

MMR greedily picks documents that balance relevance with diversity among the
documents already picked:

    MMR(d) = λ × score(d) - (1-λ) × max_sim(d, selected)

Where:
    - score(d): the backend's similarity score for the candidate
    - max_sim(d, selected): highest cosine similarity between the candidate's
      dense vector and any already-selected document

The first pick is always the highest-scoring candidate. Later picks scan the
remaining candidates in backend order and keep the first strictly best MMR
score, so ties go to the earlier candidate. Candidates without a usable dense
vector contribute zero similarity.

Lambda Parameter Guidelines:
    - λ = 1.0: Pure relevance ranking (backend order)
    - λ = 0.5: Balanced relevance and diversity (default)
    - λ → 0: Diversity dominates
"""

from typing import Optional, Sequence

import numpy as np
from qdrant_client.http.models import ScoredPoint

from vectorsearch.postprocess import extract_dense_vector
from vectorsearch.types import DEFAULT_LAMBDA_MULT


def cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """Compute cosine similarity between two embeddings.

    Args:
        embedding1: First embedding vector.
        embedding2: Second embedding vector.

    Returns:
        Cosine similarity, or 0.0 when either vector is empty or zero, or the
        lengths differ.
    """
    if len(embedding1) == 0 or len(embedding1) != len(embedding2):
        return 0.0
    a = np.asarray(embedding1, dtype=np.float64)
    b = np.asarray(embedding2, dtype=np.float64)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def _unit_matrix(vectors: list[list[float]]) -> np.ndarray:
    """Stack vectors into unit rows; unusable vectors become zero rows."""
    dim = next((len(v) for v in vectors if v), 0)
    matrix = np.zeros((len(vectors), dim), dtype=np.float64)
    for i, vec in enumerate(vectors):
        if dim and len(vec) == dim:
            matrix[i] = vec
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1.0, norms)
    return matrix / norms


def select_mmr_results(
    candidates: Sequence[ScoredPoint],
    k: int,
    lambda_mult: float = DEFAULT_LAMBDA_MULT,
    vector_name: Optional[str] = None,
) -> list[ScoredPoint]:
    """Select ``k`` candidates by Maximal Marginal Relevance.

    Args:
        candidates: Scored points with vectors, in backend order.
        k: Number of documents to select.
        lambda_mult: Relevance/diversity trade-off; non-positive means 0.5.
        vector_name: Named vector to compare when points carry several.

    Returns:
        Selected points in selection order. When ``k`` covers the whole pool,
        the pool is returned in its original order.
    """
    if k <= 0 or not candidates:
        return []
    if k >= len(candidates):
        return list(candidates)
    if lambda_mult <= 0:
        lambda_mult = DEFAULT_LAMBDA_MULT

    scores = np.array([float(c.score) for c in candidates], dtype=np.float64)
    doc_matrix = _unit_matrix([extract_dense_vector(c.vector, vector_name) for c in candidates])

    first = int(np.argmax(scores))
    selected_indices = [first]
    # Highest similarity of each candidate to any selected document.
    redundancy = doc_matrix @ doc_matrix[first]
    remaining = [i for i in range(len(candidates)) if i != first]

    while len(selected_indices) < k and remaining:
        best_idx = -1
        best_score = -np.inf
        for idx in remaining:
            mmr_score = lambda_mult * scores[idx] - (1 - lambda_mult) * redundancy[idx]
            if mmr_score > best_score:
                best_score = mmr_score
                best_idx = idx
        if best_idx == -1:
            break
        selected_indices.append(best_idx)
        remaining.remove(best_idx)
        redundancy = np.maximum(redundancy, doc_matrix @ doc_matrix[best_idx])

    return [candidates[i] for i in selected_indices]
