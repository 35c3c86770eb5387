"""
jobscaler/shared/context.py
───────────────────────────
InvocationContext: the cancellation signal threaded through every remote call.

Each ScaleExecutor.request_scale() invocation receives one context. The
caller may cancel it from another thread (shutdown, leader loss) or give it
a deadline. Cluster clients check it before each call and bound the call's
network timeout by the time remaining, so an invocation fails instead of
hanging on a stuck API server.

Thread safety
──────────────
cancel() may be called from any thread; the flag is a threading.Event.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class InvocationCancelledError(Exception):
    """
    Raised when a remote call is attempted on a cancelled or expired context.

    Attributes:
        reason: "cancelled" or "deadline exceeded".
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvocationContext:
    """
    Cancellation + deadline for one executor invocation.

    Usage:
        ctx = InvocationContext.with_timeout(30.0)
        ctx.raise_if_cancelled()
        timeout = ctx.remaining()      # None when no deadline
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        # deadline is on the time.monotonic() clock
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "InvocationContext":
        """A context with no deadline, cancelled only explicitly."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "InvocationContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self._expired()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative). None = unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise InvocationCancelledError("cancelled")
        if self._expired():
            raise InvocationCancelledError("deadline exceeded")

    def _expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline
