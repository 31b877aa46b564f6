"""
tests.test_cache

TTL read cache: hits, lazy expiry, loader failures and racing misses.
"""

from __future__ import annotations

import asyncio

import pytest

from music_library.db.cache import TtlCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    def __init__(self, value) -> None:
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


@pytest.mark.asyncio
async def test_hit_within_ttl_does_not_reload() -> None:
    clock = FakeClock()
    cache = TtlCache(clock=clock)
    loader = CountingLoader(["a"])

    first = await cache.get_or_load("k", 300, loader)
    clock.now += 299
    second = await cache.get_or_load("k", 300, loader)

    assert first is second
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_expired_entry_is_never_served() -> None:
    clock = FakeClock()
    cache = TtlCache(clock=clock)
    loader = CountingLoader(["a"])

    await cache.get_or_load("k", 300, loader)
    clock.now += 300

    assert cache.get("k") is None
    await cache.get_or_load("k", 300, loader)
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_failing_loader_propagates_and_keeps_previous_entry() -> None:
    clock = FakeClock()
    cache = TtlCache(clock=clock)
    cache.set("k", "old", ttl=10)
    clock.now += 10

    async def boom():
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError, match="db down"):
        await cache.get_or_load("k", 10, boom)

    # The stale entry was not replaced by anything.
    assert "k" in cache._entries
    assert cache._entries["k"].value == "old"


@pytest.mark.asyncio
async def test_concurrent_misses_both_invoke_loader() -> None:
    cache = TtlCache()
    release = asyncio.Event()
    calls = 0

    async def slow_loader():
        nonlocal calls
        calls += 1
        await release.wait()
        return calls

    first = asyncio.create_task(cache.get_or_load("k", 60, slow_loader))
    second = asyncio.create_task(cache.get_or_load("k", 60, slow_loader))
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(first, second)

    assert calls == 2
    assert sorted(results) == [2, 2]


def test_invalidate_and_clear() -> None:
    cache = TtlCache()
    cache.set("a", 1, ttl=60)
    cache.set("b", 2, ttl=60)
    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.clear()
    assert cache.get("b") is None
