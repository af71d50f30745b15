"""End-to-end search scenarios against the in-memory Qdrant client.

These tests run real ``query_points`` / ``count`` calls through qdrant-client's
local mode, so planning, fusion and post-processing are exercised against the
backend's own scoring.
"""

import numpy as np
import pytest
from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    Distance,
    PointStruct,
    SparseVector,
    SparseVectorParams,
    VectorParams,
)

from vectorsearch import (
    BackendFailureError,
    HybridSearchOptions,
    MMRSearchOptions,
    QdrantStore,
    ScoreThresholdOptions,
    SearchOptions,
)


pytestmark = pytest.mark.integration

DIM = 8


@pytest.fixture
def memory_store():
    """Create a store over an in-memory Qdrant client."""
    store = QdrantStore(client=QdrantClient(":memory:"))
    yield store
    store.disconnect()


@pytest.fixture
def corpus_vectors() -> np.ndarray:
    """100 deterministic random dense vectors."""
    return np.random.default_rng(42).random((100, DIM))


@pytest.fixture
def docs_store(memory_store, corpus_vectors):
    """Store with a 100-point "docs" collection using a named dense vector."""
    client = memory_store.snapshot_client()
    client.create_collection(
        collection_name="docs",
        vectors_config={"dense": VectorParams(size=DIM, distance=Distance.COSINE)},
    )
    client.upsert(
        collection_name="docs",
        points=[
            PointStruct(
                id=i,
                vector={"dense": vec.tolist()},
                payload={"content": f"doc {i}", "group": i % 3},
            )
            for i, vec in enumerate(corpus_vectors)
        ],
    )
    return memory_store


class TestSimilarityScenarios:
    """Similarity, pagination and threshold searches over the docs collection."""

    def test_query_equal_to_point_zero(self, docs_store, corpus_vectors) -> None:
        """Test that the point itself ranks first with score ~1."""
        result = docs_store.search_similar(
            SearchOptions(
                collection_name="docs",
                query_vector=corpus_vectors[0].tolist(),
                k=5,
                include_content=True,
            )
        )

        assert len(result.documents) == 5
        top = result.documents[0]
        assert top.document.id == "0"
        assert top.document.content == "doc 0"
        assert top.score == pytest.approx(1.0, abs=1e-4)
        scores = [item.score for item in result.documents]
        assert scores == sorted(scores, reverse=True)
        assert result.max_score == scores[0]
        assert result.min_score == scores[-1]

    def test_second_page(self, docs_store, corpus_vectors) -> None:
        """Test that page 2 of size 3 is ranks 4-6 of the plain search."""
        query = corpus_vectors[10].tolist()
        top6 = docs_store.search_similar(
            SearchOptions(collection_name="docs", query_vector=query, k=6)
        )

        page = docs_store.search_similar(
            SearchOptions(
                collection_name="docs",
                query_vector=query,
                page=2,
                page_size=3,
                include_total=True,
            )
        )

        assert [d.document.id for d in page.documents] == [
            d.document.id for d in top6.documents[3:6]
        ]
        assert page.page == 2
        assert page.has_previous is True
        assert page.previous_page == 1
        assert page.has_next is False
        assert page.total == 6
        assert page.total_pages == 2

    def test_filtered_search(self, docs_store, corpus_vectors) -> None:
        """Test that payload filters restrict the candidates."""
        result = docs_store.search_similar(
            SearchOptions(
                collection_name="docs",
                query_vector=corpus_vectors[0].tolist(),
                k=10,
                filter={"group": 1},
                include_metadata=True,
            )
        )

        assert len(result.documents) == 10
        assert all(d.document.metadata["group"] == 1 for d in result.documents)

    def test_saturated_total_counts_collection(self, docs_store, corpus_vectors) -> None:
        """Test the approximate count once max_results is reached."""
        result = docs_store.search_similar(
            SearchOptions(
                collection_name="docs",
                query_vector=corpus_vectors[0].tolist(),
                page=1,
                page_size=5,
                max_results=5,
                include_total=True,
            )
        )

        assert result.total == 100
        assert result.total_pages == 20

    def test_score_threshold(self, docs_store, corpus_vectors) -> None:
        """Test that every returned score clears the threshold."""
        result = docs_store.search_with_score_threshold(
            ScoreThresholdOptions(
                collection_name="docs",
                query_vector=corpus_vectors[0].tolist(),
                k=100,
                score_threshold=0.9,
            )
        )

        assert result.documents
        assert result.documents[0].document.id == "0"
        assert all(item.score >= 0.9 for item in result.documents)


class TestMMRScenario:
    """MMR over a cluster of near-duplicates plus one distinct point."""

    def test_distinct_point_selected_early(self, memory_store) -> None:
        """Test that v5 is picked before the remaining near-duplicates."""
        client = memory_store.snapshot_client()
        client.create_collection(
            collection_name="mmr",
            vectors_config={"dense": VectorParams(size=3, distance=Distance.COSINE)},
        )
        vectors = {
            1: [1.0, 0.0, 0.0],
            2: [1.0, 0.02, 0.0],
            3: [1.0, 0.04, 0.0],
            4: [1.0, -0.02, 0.0],
            5: [0.0, 1.0, 0.0],
        }
        client.upsert(
            collection_name="mmr",
            points=[PointStruct(id=i, vector={"dense": v}) for i, v in vectors.items()],
        )

        result = memory_store.search_mmr(
            MMRSearchOptions(
                collection_name="mmr",
                query_vector=[1.0, 0.8, 0.0],
                k=3,
                lambda_mult=0.5,
                include_vector=True,
            )
        )

        ids = [item.document.id for item in result.documents]
        assert len(ids) == 3
        assert ids[0] == "3"
        assert ids[1] == "5"
        assert len(result.documents[0].document.vector) == 3


class TestHybridScenario:
    """Hybrid dense + sparse search with RRF fusion."""

    def test_rrf_surfaces_both_leaders(self, memory_store) -> None:
        """Test that the dense leader A and the sparse leader B rank top 3."""
        client = memory_store.snapshot_client()
        client.create_collection(
            collection_name="hybrid",
            vectors_config={"dense": VectorParams(size=4, distance=Distance.COSINE)},
            sparse_vectors_config={"sparse": SparseVectorParams()},
        )
        docs = {
            1: ("A", [1.0, 0.0, 0.0, 0.0], SparseVector(indices=[10], values=[0.5])),
            2: ("B", [0.7, 0.7, 0.0, 0.0], SparseVector(indices=[10], values=[2.0])),
            3: ("C", [0.0, 1.0, 0.0, 0.0], SparseVector(indices=[11], values=[1.0])),
            4: ("D", [0.0, 0.0, 1.0, 0.0], SparseVector(indices=[12], values=[1.0])),
            5: ("E", [0.0, 0.0, 0.0, 1.0], SparseVector(indices=[10], values=[0.1])),
        }
        client.upsert(
            collection_name="hybrid",
            points=[
                PointStruct(
                    id=i,
                    vector={"dense": dense, "sparse": sparse},
                    payload={"name": name},
                )
                for i, (name, dense, sparse) in docs.items()
            ],
        )

        result = memory_store.search_hybrid(
            HybridSearchOptions(
                collection_name="hybrid",
                query_vector=[1.0, 0.0, 0.0, 0.0],
                query_sparse={"indices": [10], "values": [1.0]},
                k=3,
                fields=["name"],
            )
        )

        names = [item.document.metadata["name"] for item in result.documents]
        assert len(names) == 3
        assert {"A", "B"} <= set(names[:3])


class TestBatchScenario:
    """Batch of ten searches with one bad collection."""

    def test_one_bad_collection(self, docs_store, corpus_vectors) -> None:
        """Test that nine searches succeed and the bad one is reported."""
        intents = [
            lambda query: SearchOptions(collection_name="docs", query_vector=query, k=3),
            lambda query: MMRSearchOptions(collection_name="docs", query_vector=query, k=3),
            lambda query: ScoreThresholdOptions(
                collection_name="docs", query_vector=query, k=3, score_threshold=0.5
            ),
            lambda query: HybridSearchOptions(collection_name="docs", query_vector=query, k=3),
        ]
        options = [
            intents[i % len(intents)](corpus_vectors[i].tolist()) for i in range(10)
        ]
        options[6] = SearchOptions(
            collection_name="does_not_exist", query_vector=corpus_vectors[6].tolist(), k=3
        )

        batch = docs_store.search_batch(options)

        assert batch.failed_indices == [6]
        assert isinstance(batch.errors[6], BackendFailureError)
        assert batch.results[6] is None
        for i in range(10):
            if i == 6:
                continue
            assert batch.results[i].documents[0].document.id == str(i)
        assert "search 6:" in str(batch.aggregate_error)
