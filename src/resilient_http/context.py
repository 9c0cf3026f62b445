"""Cancellation and deadline context for requests.

A Context carries an optional absolute deadline (on the monotonic clock)
and a cancellation signal. Children inherit the earliest deadline of their
ancestors and are cancelled together with them.

Example:
    >>> ctx = Context.with_timeout(5.0)
    >>> has_deadline(ctx)
    True
    >>> fired = await ctx.sleep(0.5)  # False if ctx ends first
"""

from __future__ import annotations

import asyncio
import time
import weakref
from datetime import UTC, datetime
from typing import TypeGuard

from .errors import ContextCancelledError, DeadlineExceededError


class Context:
    """Deadline-bearing cancellation scope shared by one request's attempts.

    A parent holds its children weakly and lets go of them once their
    deadline has passed, so a long-lived parent can spawn any number of
    short-lived request contexts.
    """

    __slots__ = ("_deadline", "_parent", "_children", "_cancelled", "_event", "__weakref__")

    def __init__(self, deadline: float | None = None, parent: Context | None = None) -> None:
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline
        self._parent: Context | None = None
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        self._cancelled = False
        self._event: asyncio.Event | None = None
        if parent is None:
            return
        if parent._cancelled:
            self.cancel()
        elif not self.expired():
            parent._prune_expired()
            parent._children.add(self)
            self._parent = parent

    def _prune_expired(self) -> None:
        # An expired child keeps reporting its deadline; cancellation can't reach it
        for child in [c for c in self._children if c.expired()]:
            self._children.discard(child)
            child._parent = None

    # ─────────────────────────────────────────────────────────────────
    # Constructors
    # ─────────────────────────────────────────────────────────────────

    @classmethod
    def background(cls) -> Context:
        """Root context without a deadline."""
        return cls()

    @classmethod
    def with_cancel(cls, parent: Context | None = None) -> Context:
        return cls(parent=parent)

    @classmethod
    def with_timeout(cls, seconds: float, parent: Context | None = None) -> Context:
        """Context whose deadline is ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    @classmethod
    def with_deadline(cls, when: datetime, parent: Context | None = None) -> Context:
        """Context expiring at wall-clock time ``when`` (naive values are taken as UTC)."""
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        remaining = (when - datetime.now(UTC)).total_seconds()
        return cls(deadline=time.monotonic() + remaining, parent=parent)

    # ─────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────

    @property
    def deadline(self) -> float | None:
        """Absolute deadline on the ``time.monotonic()`` clock, if any."""
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def cancel(self) -> None:
        """Cancel this context and every descendant. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        for child in list(self._children):
            if not child.expired():
                child.cancel()
        if self._parent is not None:
            self._parent._children.discard(self)
            self._parent = None
        self._children.clear()

    def done(self) -> bool:
        return self._cancelled or self.expired()

    def err(self) -> ContextCancelledError | None:
        """Why the context is done, or None while it is still live."""
        if self._cancelled:
            return ContextCancelledError()
        if self.expired():
            return DeadlineExceededError()
        return None

    # ─────────────────────────────────────────────────────────────────
    # Waiting
    # ─────────────────────────────────────────────────────────────────

    async def sleep(self, delay: float) -> bool:
        """Wait ``delay`` seconds unless the context ends first.

        Returns True when the timer fired and False when the context was
        cancelled or its deadline passed. Cancellation wins a tie.
        """
        if self.done():
            return False
        remaining = self.remaining()
        # The deadline arrives no later than the timer
        bounded = remaining is not None and remaining <= delay
        if bounded:
            delay = remaining  # type: ignore[assignment]
        if delay <= 0:
            return not (bounded or self.done())
        if self._event is None:
            self._event = asyncio.Event()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except TimeoutError:
            return not (bounded or self.done())
        return False

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "expired" if self.expired() else "live"
        remaining = self.remaining()
        return f"Context({state}, remaining={remaining if remaining is None else round(remaining, 3)})"


def has_deadline(ctx: Context | None) -> TypeGuard[Context]:
    """Whether ``ctx`` carries a deadline. False for None."""
    return ctx is not None and ctx.deadline is not None
