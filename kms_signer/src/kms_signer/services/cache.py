"""Single-entry, time-bounded cache for the resolved key version.

The cached value is an immutable :class:`ResolvedKeyVersion` stored together
with its expiry in one tuple, so a reader never sees a verifier from one
resolution paired with the hash function of another. Reads of a live entry
take no lock. Refreshes are single-flight: the first caller to find the entry
stale resolves while holding the lock, and callers queued behind it reuse the
fresh entry instead of issuing their own round trip.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Tuple

import structlog

from ..context import CallContext
from ..core.exceptions import DeadlineExceeded
from ..models import ResolvedKeyVersion

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0

Loader = Callable[[CallContext], ResolvedKeyVersion]

# (value, expires_at); expires_at is None when the entry never expires
_Entry = Tuple[ResolvedKeyVersion, Optional[float]]


class ResolutionCache:
    def __init__(
        self,
        loader: Loader,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """``ttl`` of 0 means entries never expire on their own"""
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        self._loader = loader
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[_Entry] = None

    @property
    def ttl(self) -> float:
        return self._ttl

    def _live(self, entry: Optional[_Entry]) -> bool:
        if entry is None:
            return False
        expires_at = entry[1]
        return expires_at is None or self._clock() < expires_at

    def get(self, ctx: CallContext) -> ResolvedKeyVersion:
        entry = self._entry
        if self._live(entry):
            return entry[0]  # type: ignore[index]

        remaining = ctx.remaining()
        acquired = self._lock.acquire(timeout=-1 if remaining is None else remaining)
        if not acquired:
            raise DeadlineExceeded("timed out waiting for key version refresh")
        try:
            entry = self._entry
            if self._live(entry):
                return entry[0]  # type: ignore[index]
            value = self._loader(ctx)
            expires_at = None if self._ttl == 0 else self._clock() + self._ttl
            self._entry = (value, expires_at)
            logger.debug("key_version_cache_refreshed", version=value.name, ttl=self._ttl)
            return value
        finally:
            self._lock.release()

    def invalidate(self) -> None:
        """Drop the entry without waiting on a refresh that is in flight"""
        self._entry = None
        logger.debug("key_version_cache_invalidated")

    def peek(self) -> Optional[ResolvedKeyVersion]:
        """The current entry regardless of expiry, without resolving"""
        entry = self._entry
        return entry[0] if entry is not None else None


__all__ = ["DEFAULT_TTL_SECONDS", "ResolutionCache"]
