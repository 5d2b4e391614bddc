"""Where session data lives between requests."""

import fcntl
import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol

import anyio

from cineverse.cache.store import Cache

logger = logging.getLogger("cineverse.sessions")


class SessionBackend(Protocol):
    async def read(self, session_id: str) -> dict[str, Any] | None: ...

    async def write(self, session_id: str, data: dict[str, Any], ttl: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def gc(self, max_age: int) -> int: ...


class MemorySessionBackend:
    """Process-local sessions; for tests and single-worker development."""

    __slots__ = ("_sessions",)

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[dict[str, Any], float]] = {}

    async def read(self, session_id: str) -> dict[str, Any] | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        data, expires_at = entry
        if expires_at <= time.time():
            del self._sessions[session_id]
            return None
        return dict(data)

    async def write(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        self._sessions[session_id] = (dict(data), time.time() + ttl)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def gc(self, max_age: int) -> int:
        now = time.time()
        expired = [sid for sid, (_, exp) in self._sessions.items() if exp <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


class FileSessionBackend:
    """One JSON file per session id.

    Reads are best effort: a missing or unreadable file is a fresh
    session. Writes hold an exclusive ``flock``.
    """

    __slots__ = ("directory",)

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, session_id: str) -> Path:
        # ids are hex from new_session_id(); anything else never touches disk
        if not session_id.isalnum():
            msg = f"Invalid session id: {session_id!r}"
            raise ValueError(msg)
        return self.directory / f"sess_{session_id}.json"

    async def read(self, session_id: str) -> dict[str, Any] | None:
        def load() -> dict[str, Any] | None:
            try:
                path = self._path(session_id)
                written_at = path.stat().st_mtime
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                if not isinstance(exc, FileNotFoundError):
                    logger.warning("Unreadable session %s: %s", session_id[:8], exc)
                return None
            if not isinstance(payload, dict):
                return None
            if written_at + float(payload.get("ttl", 0)) <= time.time():
                path.unlink(missing_ok=True)
                return None
            return payload.get("data")

        return await anyio.to_thread.run_sync(load)

    async def write(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        def save() -> None:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._path(session_id)
            with path.open("a", encoding="utf-8") as fh:
                fcntl.flock(fh, fcntl.LOCK_EX)
                try:
                    fh.seek(0)
                    fh.truncate()
                    json.dump({"ttl": ttl, "data": data}, fh, default=str)
                finally:
                    fcntl.flock(fh, fcntl.LOCK_UN)

        await anyio.to_thread.run_sync(save)

    async def delete(self, session_id: str) -> None:
        def remove() -> None:
            self._path(session_id).unlink(missing_ok=True)

        await anyio.to_thread.run_sync(remove)

    async def gc(self, max_age: int) -> int:
        def sweep() -> int:
            cutoff = time.time() - max_age
            removed = 0
            for path in self.directory.glob("sess_*.json"):
                try:
                    if path.stat().st_mtime < cutoff:
                        path.unlink()
                        removed += 1
                except FileNotFoundError:
                    continue
            return removed

        return await anyio.to_thread.run_sync(sweep)


class CacheSessionBackend:
    """Sessions stored in the cache store under ``session:<id>``."""

    __slots__ = ("_cache",)

    def __init__(self, cache: Cache) -> None:
        self._cache = cache

    async def read(self, session_id: str) -> dict[str, Any] | None:
        data = await self._cache.get(f"session:{session_id}")
        return data if isinstance(data, dict) else None

    async def write(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        await self._cache.set(f"session:{session_id}", data, ttl)

    async def delete(self, session_id: str) -> None:
        await self._cache.delete(f"session:{session_id}")

    async def gc(self, max_age: int) -> int:
        # entries carry their own TTL
        return await self._cache.gc()
