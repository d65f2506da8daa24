"""Deadline and cancellation propagation for blocking KMS calls."""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .core.exceptions import Canceled, DeadlineExceeded


class CallContext:
    """Carries a deadline and a cancellation flag through every remote call.

    A context is cheap to create and safe to share between threads. Derived
    contexts (see :meth:`with_timeout`) share the parent's cancellation flag
    and never outlive the parent's deadline.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        _cancelled: Optional[threading.Event] = None,
        _deadline: Optional[float] = None,
    ) -> None:
        self._clock = clock
        self._cancelled = _cancelled or threading.Event()
        deadline = _deadline
        if timeout is not None:
            candidate = clock() + timeout
            deadline = candidate if deadline is None else min(deadline, candidate)
        self._deadline = deadline

    @classmethod
    def background(cls) -> CallContext:
        """A context with no deadline that is never cancelled by anyone else."""
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def with_timeout(self, timeout: Optional[float]) -> CallContext:
        if timeout is None:
            return self
        return CallContext(
            timeout,
            clock=self._clock,
            _cancelled=self._cancelled,
            _deadline=self._deadline,
        )

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def check(self, operation: str = "operation") -> None:
        if self._cancelled.is_set():
            raise Canceled(f"{operation} canceled by caller")
        if self._deadline is not None and self._clock() >= self._deadline:
            raise DeadlineExceeded(f"{operation} exceeded its deadline")


def ensure_context(ctx: Optional[CallContext]) -> CallContext:
    return ctx if ctx is not None else CallContext.background()


__all__ = ["CallContext", "ensure_context"]
