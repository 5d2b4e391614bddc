"""Async SQLite wrapper over stdlib ``sqlite3`` and ``anyio``.

Every blocking sqlite3 call runs in a worker thread through
``anyio.to_thread``. The connection is opened with
``check_same_thread=False`` because consecutive calls may land on
different pool threads; callers serialize access with a lock.
"""

import sqlite3
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeAlias

import anyio

Params: TypeAlias = Sequence[Any] | Mapping[str, Any]


async def _run_sync(func: Callable[[], Any]) -> Any:
    return await anyio.to_thread.run_sync(func)


class AsyncCursor:
    """Async wrapper around ``sqlite3.Cursor``."""

    __slots__ = ("_cursor",)

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cursor = cursor

    @property
    def description(self) -> Any:
        return self._cursor.description

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        return self._cursor.lastrowid

    async def fetchall(self) -> list[Any]:
        return await _run_sync(self._cursor.fetchall)

    async def fetchone(self) -> Any:
        return await _run_sync(self._cursor.fetchone)


class AsyncConnection:
    """Async wrapper around ``sqlite3.Connection``."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @property
    def autocommit(self) -> bool:
        return bool(self._conn.autocommit)

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        self._conn.autocommit = value

    async def execute(self, sql: str, params: Params = ()) -> AsyncCursor:
        cursor = await _run_sync(lambda: self._conn.execute(sql, params))
        return AsyncCursor(cursor)

    async def executescript(self, sql: str) -> None:
        """Run a multi-statement script in one call."""
        await _run_sync(lambda: self._conn.executescript(sql))

    async def commit(self) -> None:
        await _run_sync(self._conn.commit)

    async def rollback(self) -> None:
        await _run_sync(self._conn.rollback)

    async def close(self) -> None:
        await _run_sync(self._conn.close)


async def connect(path: str) -> AsyncConnection:
    """Open a connection in autocommit mode.

    ``transaction()`` flips autocommit off for the duration of a block.
    """
    conn = await _run_sync(
        lambda: sqlite3.connect(path, autocommit=True, check_same_thread=False)
    )
    return AsyncConnection(conn)
