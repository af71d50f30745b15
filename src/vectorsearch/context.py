"""Cancellation and deadline propagation for search calls.

A :class:`SearchContext` is the caller's handle on an in-flight search: it
carries an optional absolute deadline and a cancellation flag. Child contexts
created with :meth:`SearchContext.with_timeout` never outlive their parent and
observe the parent's cancellation, so cancelling a batch context signals every
search running under it at once.

Example:
    >>> ctx = SearchContext.background().with_timeout(250)
    >>> result = store.search_similar(options, ctx=ctx)
"""

import threading
import time
from typing import Optional

from vectorsearch.errors import CanceledError, DeadlineExceededError


class SearchContext:
    """Deadline plus cancellation flag shared by a search and its children."""

    def __init__(
        self,
        deadline: Optional[float] = None,
        parent: Optional["SearchContext"] = None,
    ) -> None:
        """Create a context.

        Args:
            deadline: Absolute deadline on the ``time.monotonic()`` clock, or
                None for no deadline of its own.
            parent: Context whose deadline and cancellation this one inherits.
        """
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline
        self.parent = parent
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "SearchContext":
        """Return a context that never expires and is never cancelled."""
        return cls()

    @classmethod
    def with_deadline_in(cls, timeout_ms: float) -> "SearchContext":
        """Return a root context expiring ``timeout_ms`` milliseconds from now."""
        return cls(deadline=time.monotonic() + timeout_ms / 1000.0)

    def with_timeout(self, timeout_ms: Optional[float]) -> "SearchContext":
        """Derive a child context with an additional per-call timeout.

        A missing or non-positive timeout yields a child that only inherits
        the parent's deadline.
        """
        if not timeout_ms or timeout_ms <= 0:
            return SearchContext(parent=self)
        return SearchContext(deadline=time.monotonic() + timeout_ms / 1000.0, parent=self)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.parent is not None and self.parent.cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or None."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_done(self) -> None:
        """Raise if the context was cancelled or its deadline has passed.

        Raises:
            CanceledError: The context or one of its ancestors was cancelled.
            DeadlineExceededError: The deadline has passed.
        """
        if self.cancelled:
            raise CanceledError()
        if self.expired:
            raise DeadlineExceededError()
