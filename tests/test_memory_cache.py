"""
Unit tests for the in-memory stats cache
"""
import asyncio
from unittest.mock import AsyncMock

import pytest


@pytest.mark.asyncio
async def test_cache_hit_suppresses_loader(cache):
    """Second call within TTL returns the same value without loading"""
    loader = AsyncMock(return_value={"total_quotes": 5})

    first = await cache.cached("reader:stats:main:1", loader, 15)
    second = await cache.cached("reader:stats:main:1", loader, 15)

    assert loader.await_count == 1
    assert second is first
    assert cache.get_stats()["hits"] == 1
    assert cache.get_stats()["misses"] == 1


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_load(cache):
    """Two overlapping calls for one key make a single loader call"""
    gate = asyncio.Event()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        await gate.wait()
        return "value"

    first = asyncio.create_task(cache.cached("k", loader, 15))
    second = asyncio.create_task(cache.cached("k", loader, 15))
    await asyncio.sleep(0)

    assert cache.is_in_flight("k")

    gate.set()
    results = await asyncio.gather(first, second)

    assert calls == 1
    assert results == ["value", "value"]
    assert not cache.is_in_flight("k")
    assert cache.get_stats()["deduplicated"] == 1


@pytest.mark.asyncio
async def test_ttl_expiry_reloads(cache, clock):
    """Entry older than TTL is reloaded, younger one is served"""
    loader = AsyncMock(side_effect=["old", "new"])

    assert await cache.cached("k", loader, 15) == "old"

    clock.advance(14)
    assert await cache.cached("k", loader, 15) == "old"

    clock.advance(1)
    assert await cache.cached("k", loader, 15) == "new"
    assert loader.await_count == 2


@pytest.mark.asyncio
async def test_ttl_is_judged_per_call(cache, clock):
    """The same entry can be live for one caller and stale for another"""
    loader = AsyncMock(side_effect=["first", "second"])
    await cache.cached("k", loader, 15)

    clock.advance(20)

    assert await cache.cached("k", loader, 30) == "first"
    assert await cache.cached("k", loader, 15) == "second"


@pytest.mark.asyncio
async def test_failed_load_is_not_cached(cache):
    """Loader error reaches the caller and leaves no entry behind"""
    failing = AsyncMock(side_effect=RuntimeError("network down"))

    with pytest.raises(RuntimeError, match="network down"):
        await cache.cached("k", failing, 15)

    assert cache.peek("k") is None
    assert not cache.is_in_flight("k")
    assert cache.get_stats()["errors"] == 1

    loader = AsyncMock(return_value="ok")
    assert await cache.cached("k", loader, 15) == "ok"
    loader.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_load_reaches_every_waiter(cache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        raise ValueError("bad response")

    waiters = [asyncio.create_task(cache.cached("k", loader, 15)) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()

    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, ValueError) for r in results)
    assert not cache.is_in_flight("k")


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_load(cache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return 7

    first = asyncio.create_task(cache.cached("k", loader, 15))
    second = asyncio.create_task(cache.cached("k", loader, 15))
    await asyncio.sleep(0)

    first.cancel()
    gate.set()

    assert await second == 7
    assert first.cancelled()
    assert cache.peek("k").value == 7


@pytest.mark.asyncio
async def test_invalidate_listed_keys_only(cache):
    loaders = {key: AsyncMock(return_value=key.upper()) for key in ("k1", "k2", "k3")}
    for key, loader in loaders.items():
        await cache.cached(key, loader, 15)

    cache.invalidate(["k1", "k2"])

    for key, loader in loaders.items():
        await cache.cached(key, loader, 15)

    assert loaders["k1"].await_count == 2
    assert loaders["k2"].await_count == 2
    assert loaders["k3"].await_count == 1


@pytest.mark.parametrize("keys", [[], None])
@pytest.mark.asyncio
async def test_invalidate_without_keys_clears_everything(cache, keys):
    loaders = {key: AsyncMock(return_value=key) for key in ("k1", "k2")}
    for key, loader in loaders.items():
        await cache.cached(key, loader, 15)

    cache.invalidate(keys)

    assert len(cache) == 0
    for key, loader in loaders.items():
        await cache.cached(key, loader, 15)
        assert loader.await_count == 2


@pytest.mark.asyncio
async def test_invalidate_all_drops_in_flight_and_stale_write_back(cache):
    """A load started before invalidate_all answers its waiters but is not stored"""
    gate = asyncio.Event()
    values = iter(["stale", "fresh"])

    async def loader():
        value = next(values)
        await gate.wait()
        return value

    first = asyncio.create_task(cache.cached("k", loader, 15))
    await asyncio.sleep(0)

    cache.invalidate_all()
    assert not cache.is_in_flight("k")

    second = asyncio.create_task(cache.cached("k", loader, 15))
    await asyncio.sleep(0)
    gate.set()

    assert await first == "stale"
    assert await second == "fresh"
    assert cache.peek("k").value == "fresh"
    assert not cache.is_in_flight("k")


@pytest.mark.asyncio
async def test_invalidate_key_during_load_skips_write_back(cache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return "pre-mutation"

    task = asyncio.create_task(cache.cached("k", loader, 15))
    await asyncio.sleep(0)

    cache.invalidate(["k"])
    gate.set()

    assert await task == "pre-mutation"
    assert cache.peek("k") is None


@pytest.mark.asyncio
async def test_get_stats_hit_rate(cache):
    loader = AsyncMock(return_value=1)
    for _ in range(4):
        await cache.cached("k", loader, 15)

    stats = cache.get_stats()
    assert stats["hits"] == 3
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.75
    assert stats["entries"] == 1
    assert stats["in_flight"] == 0
