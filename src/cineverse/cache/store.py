"""Key/value cache with absolute TTLs.

``Cache`` owns expiry and error handling; the backend only stores
entries. An expired entry reads as a miss and is removed on the way.
Backend I/O faults are logged and degrade to a miss, so a broken cache
directory never fails a request.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import anyio

from cineverse._internal.invoke import invoke
from cineverse.cache.backends import CacheBackend

logger = logging.getLogger("cineverse.cache")

_FAULTS = (OSError, ValueError, KeyError, TypeError)
_MISSING: Any = object()


class Cache:
    """Async cache facade over a ``CacheBackend``.

    Usage::

        cache = Cache(MemoryCacheBackend(), default_ttl=600)
        await cache.set("movies:trending", rows, ttl=300)
        rows = await cache.remember("genres", 3600, load_genres)
    """

    __slots__ = ("_backend", "_lock", "default_ttl", "prefix")

    def __init__(self, backend: CacheBackend, *, default_ttl: int = 3600, prefix: str = "") -> None:
        self._backend = backend
        self.default_ttl = default_ttl
        self.prefix = prefix
        self._lock: anyio.Lock | None = None

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _expires_at(self, ttl: int | None) -> float | None:
        ttl = self.default_ttl if ttl is None else ttl
        return time.time() + ttl if ttl > 0 else None

    async def get(self, key: str, default: Any = None) -> Any:
        full = self._key(key)
        try:
            entry = await self._backend.load(full)
        except _FAULTS as exc:
            logger.warning("Cache read failed for %r: %s", key, exc)
            return default
        if entry is None:
            return default
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.time():
            await self.delete(key)
            return default
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store *value*; ``ttl=0`` stores without expiry. Returns False on failure."""
        try:
            await self._backend.store(self._key(key), value, self._expires_at(ttl))
        except _FAULTS as exc:
            logger.warning("Cache write failed for %r: %s", key, exc)
            return False
        return True

    async def has(self, key: str) -> bool:
        return await self.get(key, _MISSING) is not _MISSING

    async def delete(self, key: str) -> bool:
        try:
            return await self._backend.remove(self._key(key))
        except _FAULTS as exc:
            logger.warning("Cache delete failed for %r: %s", key, exc)
            return False

    forget = delete

    async def clear(self) -> bool:
        try:
            await self._backend.flush()
        except _FAULTS as exc:
            logger.warning("Cache clear failed: %s", exc)
            return False
        return True

    async def get_many(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: await self.get(key) for key in keys}

    async def set_many(self, values: Mapping[str, Any], ttl: int | None = None) -> bool:
        results = [await self.set(key, value, ttl) for key, value in values.items()]
        return all(results)

    async def remember(
        self, key: str, ttl: int | None, factory: Callable[[], Awaitable[Any] | Any]
    ) -> Any:
        """Return the cached value, or compute it with *factory* and store it.

        *factory* may be sync or async. A ``None`` result is not cached.
        """
        value = await self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = await invoke(factory)
        if value is not None:
            await self.set(key, value, ttl)
        return value

    async def increment(self, key: str, amount: int = 1, ttl: int | None = None) -> int:
        """Add *amount* to a counter and return the new value.

        A fresh counter gets *ttl*; later increments keep its original
        expiry, which is what a fixed-window rate limiter needs.
        """
        if self._lock is None:
            self._lock = anyio.Lock()
        async with self._lock:
            full = self._key(key)
            try:
                entry = await self._backend.load(full)
            except _FAULTS as exc:
                logger.warning("Cache read failed for %r: %s", key, exc)
                entry = None
            now = time.time()
            if entry is None or (entry[1] is not None and entry[1] <= now):
                value, expires_at = amount, self._expires_at(ttl)
            else:
                value, expires_at = int(entry[0]) + amount, entry[1]
            try:
                await self._backend.store(full, value, expires_at)
            except _FAULTS as exc:
                logger.warning("Cache write failed for %r: %s", key, exc)
            return value

    async def ttl(self, key: str) -> int | None:
        """Seconds until *key* expires; None when missing or without expiry."""
        try:
            entry = await self._backend.load(self._key(key))
        except _FAULTS:
            return None
        if entry is None or entry[1] is None:
            return None
        return max(0, int(entry[1] - time.time()))

    async def gc(self) -> int:
        """Remove expired entries; returns how many were dropped."""
        try:
            return await self._backend.gc()
        except _FAULTS as exc:
            logger.warning("Cache gc failed: %s", exc)
            return 0
