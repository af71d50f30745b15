"""Tests for SearchContext deadline and cancellation propagation."""

import time

import pytest

from vectorsearch.context import SearchContext
from vectorsearch.errors import CanceledError, DeadlineExceededError


class TestSearchContext:
    """Test suite for SearchContext.

    Tests cover:
    - Background contexts
    - Child deadlines bounded by the parent
    - Cancellation reaching children
    - raise_if_done ordering
    """

    def test_background_never_expires(self) -> None:
        """Test that the background context has no deadline."""
        ctx = SearchContext.background()

        assert ctx.remaining() is None
        assert not ctx.expired
        assert not ctx.cancelled
        ctx.raise_if_done()

    def test_with_timeout_sets_deadline(self) -> None:
        """Test that a per-call timeout becomes a deadline."""
        ctx = SearchContext.background().with_timeout(5000)

        assert 0 < ctx.remaining() <= 5.0

    @pytest.mark.parametrize("timeout_ms", [0, -10, None])
    def test_non_positive_timeout_inherits(self, timeout_ms) -> None:
        """Test that a missing timeout only inherits the parent deadline."""
        parent = SearchContext.with_deadline_in(2000)
        child = parent.with_timeout(timeout_ms)

        assert child.deadline == parent.deadline

    def test_child_never_outlives_parent(self) -> None:
        """Test that a longer child timeout is capped by the parent."""
        parent = SearchContext.with_deadline_in(100)
        child = parent.with_timeout(60_000)

        assert child.deadline == parent.deadline

    def test_shorter_child_timeout_wins(self) -> None:
        """Test that a shorter child timeout tightens the deadline."""
        parent = SearchContext.with_deadline_in(60_000)
        child = parent.with_timeout(100)

        assert child.deadline < parent.deadline

    def test_cancel_reaches_children(self) -> None:
        """Test that cancelling a parent cancels derived contexts."""
        parent = SearchContext.background()
        child = parent.with_timeout(1000).with_timeout(500)

        parent.cancel()

        assert child.cancelled
        with pytest.raises(CanceledError):
            child.raise_if_done()

    def test_cancel_child_leaves_parent(self) -> None:
        """Test that cancellation does not flow upwards."""
        parent = SearchContext.background()
        child = parent.with_timeout(1000)

        child.cancel()

        assert not parent.cancelled

    def test_expired_deadline_raises(self) -> None:
        """Test that a passed deadline raises DeadlineExceededError."""
        ctx = SearchContext(deadline=time.monotonic() - 1)

        assert ctx.expired
        assert ctx.remaining() == 0.0
        with pytest.raises(DeadlineExceededError):
            ctx.raise_if_done()

    def test_cancellation_reported_before_deadline(self) -> None:
        """Test that a cancelled and expired context reports cancellation."""
        ctx = SearchContext(deadline=time.monotonic() - 1)
        ctx.cancel()

        with pytest.raises(CanceledError):
            ctx.raise_if_done()
