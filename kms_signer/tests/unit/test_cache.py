from __future__ import annotations

import threading
import time
from types import SimpleNamespace

import pytest

from kms_signer.context import CallContext
from kms_signer.core.exceptions import DeadlineExceeded, TransientServiceError
from kms_signer.services.cache import ResolutionCache


class _Loader:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, ctx: CallContext) -> SimpleNamespace:
        self.calls += 1
        return SimpleNamespace(name=f"resolved-{self.calls}")


def test_first_get_resolves_and_caches(clock) -> None:
    loader = _Loader()
    cache = ResolutionCache(loader, ttl=300, clock=clock)
    first = cache.get(CallContext())
    assert cache.get(CallContext()) is first
    assert loader.calls == 1


def test_zero_ttl_never_expires(clock) -> None:
    loader = _Loader()
    cache = ResolutionCache(loader, ttl=0, clock=clock)
    first = cache.get(CallContext())
    clock.advance(10 * 365 * 24 * 3600)
    assert cache.get(CallContext()) is first
    assert loader.calls == 1


def test_expired_entry_triggers_exactly_one_resolution(clock) -> None:
    loader = _Loader()
    cache = ResolutionCache(loader, ttl=300, clock=clock)
    first = cache.get(CallContext())

    clock.advance(299)
    assert cache.get(CallContext()) is first
    assert loader.calls == 1

    clock.advance(1)
    second = cache.get(CallContext())
    assert second is not first
    assert cache.get(CallContext()) is second
    assert loader.calls == 2


def test_reads_do_not_extend_ttl(clock) -> None:
    loader = _Loader()
    cache = ResolutionCache(loader, ttl=300, clock=clock)
    cache.get(CallContext())
    for _ in range(5):
        clock.advance(50)
        cache.get(CallContext())
    assert loader.calls == 1
    clock.advance(50)
    cache.get(CallContext())
    assert loader.calls == 2


def test_invalidate_forces_resolution(clock) -> None:
    loader = _Loader()
    cache = ResolutionCache(loader, ttl=0, clock=clock)
    first = cache.get(CallContext())
    cache.invalidate()
    assert cache.peek() is None
    assert cache.get(CallContext()) is not first
    assert loader.calls == 2


def test_refresh_errors_surface_without_stale_fallback(clock) -> None:
    outcomes: list[object] = [SimpleNamespace(name="v1"), TransientServiceError("UNAVAILABLE")]

    def loader(ctx: CallContext) -> object:
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    cache = ResolutionCache(loader, ttl=10, clock=clock)
    cache.get(CallContext())
    clock.advance(11)
    with pytest.raises(TransientServiceError):
        cache.get(CallContext())


def test_negative_ttl_rejected() -> None:
    with pytest.raises(ValueError):
        ResolutionCache(_Loader(), ttl=-1)


def test_concurrent_refresh_is_single_flight() -> None:
    started = threading.Event()
    release = threading.Event()
    calls = 0

    def loader(ctx: CallContext) -> object:
        nonlocal calls
        calls += 1
        started.set()
        release.wait(5)
        return SimpleNamespace(name="v1")

    cache = ResolutionCache(loader, ttl=300)
    results: list[object] = []
    threads = [threading.Thread(target=lambda: results.append(cache.get(CallContext()))) for _ in range(8)]
    for thread in threads:
        thread.start()
    assert started.wait(5)
    time.sleep(0.05)
    release.set()
    for thread in threads:
        thread.join(5)

    assert calls == 1
    assert len(results) == 8
    assert all(result is results[0] for result in results)


def test_waiting_for_refresh_honors_deadline() -> None:
    started = threading.Event()
    release = threading.Event()

    def loader(ctx: CallContext) -> object:
        started.set()
        release.wait(5)
        return SimpleNamespace(name="v1")

    cache = ResolutionCache(loader, ttl=300)
    loaded: list[object] = []
    worker = threading.Thread(target=lambda: loaded.append(cache.get(CallContext())))
    worker.start()
    try:
        assert started.wait(5)
        with pytest.raises(DeadlineExceeded):
            cache.get(CallContext(0.05))
    finally:
        release.set()
        worker.join(5)
    assert [v.name for v in loaded] == ["v1"]


def test_invalidate_does_not_wait_for_refresh_in_flight() -> None:
    started = threading.Event()
    release = threading.Event()

    def loader(ctx: CallContext) -> object:
        started.set()
        release.wait(5)
        return SimpleNamespace(name="v1")

    cache = ResolutionCache(loader, ttl=300)
    worker = threading.Thread(target=lambda: cache.get(CallContext()))
    worker.start()
    try:
        assert started.wait(5)
        began = time.monotonic()
        cache.invalidate()
        assert time.monotonic() - began < 1
    finally:
        release.set()
        worker.join(5)
