"""Tests for cineverse.cache: TTLs, remember, counters, and both backends."""

import time
from pathlib import Path

import pytest

from cineverse.cache import Cache
from cineverse.cache.backends import FileCacheBackend, MemoryCacheBackend


@pytest.fixture(params=["memory", "file"])
def cache(request, tmp_path: Path) -> Cache:
    if request.param == "memory":
        return Cache(MemoryCacheBackend(), default_ttl=60)
    return Cache(FileCacheBackend(tmp_path / "cache"), default_ttl=60)


class TestBasics:
    async def test_set_get(self, cache: Cache) -> None:
        assert await cache.set("movies:trending", [{"id": 1}])
        assert await cache.get("movies:trending") == [{"id": 1}]

    async def test_missing_returns_default(self, cache: Cache) -> None:
        assert await cache.get("nope") is None
        assert await cache.get("nope", "fallback") == "fallback"

    async def test_has_and_forget(self, cache: Cache) -> None:
        await cache.set("genres:all", ["action"])
        assert await cache.has("genres:all")
        assert await cache.forget("genres:all")
        assert not await cache.has("genres:all")

    async def test_expired_entry_is_a_miss(self, cache: Cache) -> None:
        await cache.backend.store("stale", "old", time.time() - 1)
        assert await cache.get("stale") is None
        assert await cache.backend.load("stale") is None

    async def test_zero_ttl_never_expires(self, cache: Cache) -> None:
        await cache.set("forever", 1, ttl=0)
        assert await cache.ttl("forever") is None
        assert await cache.get("forever") == 1

    async def test_clear(self, cache: Cache) -> None:
        await cache.set_many({"a": 1, "b": 2})
        assert await cache.get_many(["a", "b"]) == {"a": 1, "b": 2}
        assert await cache.clear()
        assert await cache.get_many(["a", "b"]) == {"a": None, "b": None}

    async def test_gc_drops_expired(self, cache: Cache) -> None:
        await cache.backend.store("old", 1, time.time() - 5)
        await cache.set("fresh", 2)
        assert await cache.gc() == 1
        assert await cache.get("fresh") == 2


class TestRemember:
    async def test_factory_called_once(self, cache: Cache) -> None:
        calls: list[int] = []

        async def load() -> list[str]:
            calls.append(1)
            return ["Dune"]

        assert await cache.remember("titles", 60, load) == ["Dune"]
        assert await cache.remember("titles", 60, load) == ["Dune"]
        assert len(calls) == 1

    async def test_sync_factory(self, cache: Cache) -> None:
        assert await cache.remember("answer", 60, lambda: 42) == 42

    async def test_none_not_cached(self, cache: Cache) -> None:
        calls: list[int] = []

        def load() -> None:
            calls.append(1)

        await cache.remember("empty", 60, load)
        await cache.remember("empty", 60, load)
        assert len(calls) == 2


class TestIncrement:
    async def test_counts_up(self, cache: Cache) -> None:
        assert await cache.increment("hits", ttl=60) == 1
        assert await cache.increment("hits", ttl=60) == 2
        assert await cache.increment("hits", 5, ttl=60) == 7

    async def test_keeps_original_window(self, cache: Cache) -> None:
        await cache.increment("window", ttl=60)
        first = await cache.ttl("window")
        await cache.increment("window", ttl=3600)
        assert await cache.ttl("window") <= first

    async def test_expired_counter_restarts(self, cache: Cache) -> None:
        await cache.backend.store("window", 9, time.time() - 1)
        assert await cache.increment("window", ttl=60) == 1


class TestPrefix:
    async def test_keys_are_namespaced(self) -> None:
        backend = MemoryCacheBackend()
        cache = Cache(backend, prefix="cv:")
        await cache.set("genres", [1])
        assert await backend.load("cv:genres") is not None
        assert await backend.load("genres") is None


class TestMemorySweep:
    async def test_writes_sweep_expired_keys(self) -> None:
        backend = MemoryCacheBackend(sweep_every=3)
        await backend.store("throttle:10.0.0.1", 100, time.time() - 1)
        await backend.store("throttle:10.0.0.2", 100, time.time() - 1)
        assert len(backend) == 2
        await backend.store("throttle:10.0.0.3", 1, time.time() + 60)
        assert len(backend) == 1
        assert await backend.load("throttle:10.0.0.3") is not None

    async def test_counters_from_many_clients_stay_bounded(self) -> None:
        backend = MemoryCacheBackend(sweep_every=10)
        cache = Cache(backend)
        for n in range(50):
            await backend.store(f"throttle:10.0.1.{n}", 100, time.time() - 1)
        for _ in range(10):
            await cache.increment("throttle:10.0.2.1", 1, 3600)
        assert len(backend) == 1
        assert await cache.get("throttle:10.0.2.1") == 10

    async def test_zero_disables_sweeping(self) -> None:
        backend = MemoryCacheBackend(sweep_every=0)
        for n in range(5):
            await backend.store(f"k{n}", n, time.time() - 1)
        assert len(backend) == 5
