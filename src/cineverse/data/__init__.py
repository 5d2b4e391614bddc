"""Async database access for CineVerse.

SQL in, dicts (or dataclasses) out. Not an ORM.

Basic usage::

    from cineverse.data import Database

    db = Database("sqlite:///storage/cineverse.db")

    movies = await db.table("movies").where("status", "published").limit(10).get()
    user = await db.fetch_one("SELECT * FROM users WHERE id = :id", {"id": 42})

SQLite works out of the box; PostgreSQL needs ``asyncpg``::

    pip install cineverse[postgres]
"""

from cineverse.data.database import Database, QueryResult
from cineverse.data.errors import (
    DatabaseError,
    DriverNotInstalledError,
    MigrationError,
    PreconditionError,
    QueryError,
)
from cineverse.data.manager import DatabaseManager
from cineverse.data.migrate import MigrationResult, migrate
from cineverse.data.query import Page, QueryBuilder

__all__ = [
    "Database",
    "DatabaseError",
    "DatabaseManager",
    "DriverNotInstalledError",
    "MigrationError",
    "MigrationResult",
    "Page",
    "PreconditionError",
    "QueryBuilder",
    "QueryError",
    "QueryResult",
    "migrate",
]
