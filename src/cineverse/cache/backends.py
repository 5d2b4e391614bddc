"""Cache storage backends.

A backend stores ``(value, expires_at)`` entries with absolute expiry
timestamps (``None`` for no expiry). Expiry is decided by ``Cache``;
backends only store, load and remove.
"""

import fcntl
import hashlib
import json
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, TypeAlias, TypeVar

import anyio

Entry: TypeAlias = tuple[Any, float | None]
T = TypeVar("T")


class CacheBackend(Protocol):
    """Storage contract for ``Cache``."""

    async def load(self, key: str) -> Entry | None: ...

    async def store(self, key: str, value: Any, expires_at: float | None) -> None: ...

    async def remove(self, key: str) -> bool: ...

    async def flush(self) -> None: ...

    async def gc(self) -> int: ...


class MemoryCacheBackend:
    """Process-local dict. Lost on restart; not shared between workers.

    Expired entries are otherwise only dropped when their own key is
    read, so every *sweep_every* writes the whole dict is swept. Keys
    that are written once and never read again (one rate-limit counter
    per client IP) would otherwise accumulate forever.
    """

    __slots__ = ("_entries", "_writes", "sweep_every")

    def __init__(self, *, sweep_every: int = 1000) -> None:
        self._entries: dict[str, Entry] = {}
        self._writes = 0
        self.sweep_every = sweep_every

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self, key: str) -> Entry | None:
        return self._entries.get(key)

    async def store(self, key: str, value: Any, expires_at: float | None) -> None:
        self._entries[key] = (value, expires_at)
        self._writes += 1
        if self.sweep_every > 0 and self._writes % self.sweep_every == 0:
            await self.gc()

    async def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def flush(self) -> None:
        self._entries.clear()

    async def gc(self) -> int:
        now = time.time()
        expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)


class FileCacheBackend:
    """One JSON file per key under a directory.

    The file name is the md5 of the key, so keys may contain any
    characters. Writes hold an exclusive ``flock``; reads take a shared
    one. Values must be JSON-serializable.
    """

    __slots__ = ("directory",)

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        digest = hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()
        return self.directory / f"{digest}.cache"

    async def _offload(self, func: Callable[[], T]) -> T:
        return await anyio.to_thread.run_sync(func)

    async def load(self, key: str) -> Entry | None:
        return await self._offload(lambda: _read_entry(self.path_for(key)))

    async def store(self, key: str, value: Any, expires_at: float | None) -> None:
        payload = json.dumps({"value": value, "expires": expires_at})
        await self._offload(lambda: _write_locked(self.directory, self.path_for(key), payload))

    async def remove(self, key: str) -> bool:
        return await self._offload(lambda: _unlink(self.path_for(key)))

    async def flush(self) -> None:
        def wipe() -> None:
            for path in self.directory.glob("*.cache"):
                _unlink(path)

        await self._offload(wipe)

    async def gc(self) -> int:
        def sweep() -> int:
            now = time.time()
            removed = 0
            for path in self.directory.glob("*.cache"):
                try:
                    entry = _read_entry(path)
                except (ValueError, KeyError):
                    entry = None
                if entry is None or (entry[1] is not None and entry[1] <= now):
                    removed += _unlink(path)
            return removed

        return await self._offload(sweep)


def _read_entry(path: Path) -> Entry | None:
    try:
        with path.open("r", encoding="utf-8") as fh:
            fcntl.flock(fh, fcntl.LOCK_SH)
            try:
                data = json.load(fh)
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
    except FileNotFoundError:
        return None
    return data["value"], data.get("expires")


def _write_locked(directory: Path, path: Path, payload: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    # "a" then truncate under the lock: "w" would truncate before locking
    with path.open("a", encoding="utf-8") as fh:
        fcntl.flock(fh, fcntl.LOCK_EX)
        try:
            fh.seek(0)
            fh.truncate()
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        finally:
            fcntl.flock(fh, fcntl.LOCK_UN)


def _unlink(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
