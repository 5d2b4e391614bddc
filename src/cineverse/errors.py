"""CineVerse exception hierarchy.

Shared across the router, handlers, middleware, and services so every
module raises and catches the same types. ``HTTPError`` subclasses map
directly to a status code at the dispatch boundary; everything else is
an internal fault and becomes a 500.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class CineverseError(Exception):
    """Base for all cineverse-specific errors."""


class ConfigurationError(CineverseError):
    """Required external configuration is missing or invalid.

    Fatal at startup (``AppConfig.from_env``) or at first use
    (an unconfigured database connection name).
    """


@dataclass(frozen=True, slots=True)
class HTTPError(CineverseError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers, services, and middleware. The router catches
    these and renders the error envelope with ``status``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        return self.detail or str(self.status)


@dataclass(frozen=True, slots=True, init=False, eq=False)
class ValidationError(HTTPError):
    """422: bad or missing input, with field-level detail."""

    errors: dict[str, list[str]] = field(default_factory=dict)

    def __init__(
        self,
        errors: dict[str, list[str]] | None = None,
        detail: str = "The given data was invalid.",
    ) -> None:
        object.__setattr__(self, "status", 422)
        object.__setattr__(self, "detail", detail)
        object.__setattr__(self, "headers", ())
        object.__setattr__(self, "errors", dict(errors or {}))

    @classmethod
    def single(cls, field_name: str, message: str) -> ValidationError:
        """Shortcut for an error on one field; the message doubles as detail."""
        return cls({field_name: [message]}, detail=message)


class AuthenticationError(HTTPError):
    """401: bad credentials, locked account, or an unusable token.

    Messages stay generic so callers cannot tell which factor failed.
    """

    def __init__(self, detail: str = "Invalid credentials", status: int = 401) -> None:
        super().__init__(status=status, detail=detail)


class AuthorizationError(HTTPError):
    """403: authenticated but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no matching route or resource."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


NotFoundError = NotFound


class TooManyRequests(HTTPError):  # noqa: N818
    """429: the throttle window is exhausted."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            status=429,
            detail="Too Many Requests",
            headers=(("Retry-After", str(retry_after)),),
        )
