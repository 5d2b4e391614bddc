"""Data layer error hierarchy."""

from cineverse.errors import CineverseError


class DatabaseError(CineverseError):
    """Connectivity or driver failure.

    Logged with full detail; clients only see a generic 500.
    """


class DriverNotInstalledError(DatabaseError):
    """The driver for the connection URL's scheme is not installed."""


class QueryError(DatabaseError):
    """A statement failed; carries the driver's message."""


class MigrationError(DatabaseError):
    """A migration file could not be discovered or applied."""


class PreconditionError(CineverseError):
    """A query-builder guardrail refused to run the statement.

    Raised by ``update()``/``delete()`` without a WHERE clause, before
    any SQL reaches the driver.
    """
