"""Named database connections.

One ``Database`` per configured name, created on first lookup and kept
for the life of the process. The default connection also answers the
common calls directly so most code never names a connection.
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from cineverse.data.database import Database, Params, QueryResult
from cineverse.data.query import QueryBuilder
from cineverse.errors import ConfigurationError


class DatabaseManager:
    """Registry of lazily created connections.

    Usage::

        dbs = DatabaseManager({"default": "sqlite:///app.db", "analytics": "postgresql://..."})
        rows = await dbs.table("movies").where("status", "published").get()
        events = dbs.connection("analytics")
    """

    __slots__ = ("_connections", "_urls", "default")

    def __init__(self, connections: Mapping[str, str], default: str = "default") -> None:
        if default not in connections:
            msg = f"Default database connection {default!r} is not configured"
            raise ConfigurationError(msg)
        self._urls = dict(connections)
        self._connections: dict[str, Database] = {}
        self.default = default

    def connection(self, name: str | None = None) -> Database:
        """The ``Database`` registered under *name* (default when None).

        Raises:
            ConfigurationError: For a name with no configured URL.
        """
        name = name or self.default
        db = self._connections.get(name)
        if db is None:
            try:
                url = self._urls[name]
            except KeyError:
                msg = f"Database connection {name!r} is not configured"
                raise ConfigurationError(msg) from None
            db = self._connections[name] = Database(url, name=name)
        return db

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._urls)

    # -- Default-connection shortcuts --

    async def query(self, sql: str, params: Params = None) -> QueryResult:
        return await self.connection().query(sql, params)

    def table(self, name: str) -> QueryBuilder:
        return self.connection().table(name)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Database]:
        async with self.connection().transaction() as db:
            yield db

    async def disconnect_all(self) -> None:
        for db in self._connections.values():
            await db.disconnect()
        self._connections.clear()

    def __getattr__(self, name: str) -> Any:
        # fetch_all, insert, update, ... on the default connection
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.connection(), name)
