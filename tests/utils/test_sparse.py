"""Tests for sparse query vector utilities.

Tested functions:
    normalize_sparse: Convert supported sparse formats to SparseEmbedding.
    sparse_components: Raw indices/values without validation.
    sparse_problem: Describe malformed sparse queries.
    to_qdrant_sparse: Convert SparseEmbedding to Qdrant SparseVector.
"""

import pytest
from haystack.dataclasses import SparseEmbedding
from qdrant_client.http.models import SparseVector

from vectorsearch.utils.sparse import (
    normalize_sparse,
    sparse_components,
    sparse_problem,
    to_qdrant_sparse,
)


class TestNormalizeSparse:
    """Test suite for normalize_sparse."""

    def test_none_input_returns_none(self) -> None:
        """Test that None input returns None."""
        assert normalize_sparse(None) is None

    def test_sparse_embedding_passthrough(self) -> None:
        """Test that SparseEmbedding is passed through unchanged."""
        sparse = SparseEmbedding(indices=[1, 5], values=[0.5, 0.8])

        assert normalize_sparse(sparse) is sparse

    def test_pinecone_format(self) -> None:
        """Test {"indices": [...], "values": [...]} conversion."""
        result = normalize_sparse({"indices": [2, 7], "values": [0.1, 0.9]})

        assert result.indices == [2, 7]
        assert result.values == [0.1, 0.9]

    def test_milvus_format(self) -> None:
        """Test {index: value} conversion."""
        result = normalize_sparse({3: 0.4, 11: 1.2})

        assert result.indices == [3, 11]
        assert result.values == [0.4, 1.2]

    def test_qdrant_format(self) -> None:
        """Test Qdrant SparseVector conversion."""
        result = normalize_sparse(SparseVector(indices=[4], values=[0.7]))

        assert isinstance(result, SparseEmbedding)
        assert result.indices == [4]

    def test_unsupported_type_raises(self) -> None:
        """Test that unsupported inputs raise TypeError."""
        with pytest.raises(TypeError, match="Unsupported sparse embedding format"):
            normalize_sparse([0.1, 0.2])


class TestSparseProblem:
    """Test suite for sparse_components and sparse_problem."""

    def test_components_of_mismatched_input(self) -> None:
        """Test raw components are returned without length validation."""
        assert sparse_components({"indices": [1, 2], "values": [0.5]}) == ([1, 2], [0.5])

    def test_valid_input_has_no_problem(self) -> None:
        """Test that a well-formed query is accepted."""
        assert sparse_problem({"indices": [0, 9], "values": [1.0, 0.5]}) is None

    @pytest.mark.parametrize(
        "sparse",
        [None, {}, {"indices": [], "values": []}, SparseEmbedding(indices=[], values=[])],
    )
    def test_empty_inputs(self, sparse) -> None:
        """Test that absent or empty queries are reported as empty."""
        assert sparse_problem(sparse) == "empty"

    def test_mismatched_lengths(self) -> None:
        """Test that mismatched indices/values lengths are reported."""
        problem = sparse_problem({"indices": [1, 2, 3], "values": [0.5]})

        assert "equal length" in problem

    def test_negative_index(self) -> None:
        """Test that negative indices are reported."""
        problem = sparse_problem({"indices": [-1], "values": [0.5]})

        assert problem == "sparse vector indices must be non-negative integers"

    def test_unsupported_format(self) -> None:
        """Test that unsupported formats are reported instead of raised."""
        assert "Unsupported" in sparse_problem("not sparse")


class TestToQdrantSparse:
    """Test suite for to_qdrant_sparse."""

    def test_conversion(self) -> None:
        """Test conversion keeps indices and casts values to float."""
        result = to_qdrant_sparse(SparseEmbedding(indices=[1, 5], values=[1, 0.25]))

        assert isinstance(result, SparseVector)
        assert result.indices == [1, 5]
        assert result.values == [1.0, 0.25]
