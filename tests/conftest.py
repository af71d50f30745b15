"""Shared fixtures for vectorsearch tests.

Fixtures:
    make_point: Factory building Qdrant ScoredPoint objects.
    mock_client: MagicMock QdrantClient with a named "dense" vector collection.
    store: QdrantStore wrapping ``mock_client``; disconnected on teardown.
"""

from typing import Any, Callable, Optional
from unittest.mock import MagicMock

import pytest
from qdrant_client.http.models import CountResult, QueryResponse, ScoredPoint

from vectorsearch.store import QdrantStore


PointFactory = Callable[..., ScoredPoint]


@pytest.fixture
def make_point() -> PointFactory:
    """Create a factory for ScoredPoint objects."""

    def _make(
        point_id: Any,
        score: float,
        payload: Optional[dict] = None,
        vector: Any = None,
    ) -> ScoredPoint:
        return ScoredPoint(
            id=point_id,
            version=0,
            score=score,
            payload=payload,
            vector=vector,
        )

    return _make


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock QdrantClient.

    The collection has a single named vector "dense"; queries return no
    points and counts return 0 unless a test overrides them.
    """
    client = MagicMock()
    client.get_collection.return_value.config.params.vectors = {"dense": MagicMock()}
    client.query_points.return_value = QueryResponse(points=[])
    client.count.return_value = CountResult(count=0)
    return client


@pytest.fixture
def store(mock_client: MagicMock):
    """Create a connected QdrantStore over the mock client."""
    qdrant_store = QdrantStore(client=mock_client)
    yield qdrant_store
    qdrant_store.disconnect()

