"""CineVerse: a movie streaming platform backend.

Serves a JSON API under ``/api/v1`` and server-rendered pages for the
browser, backed by SQLite (or PostgreSQL) with file-based cache and
sessions.

Basic usage::

    from cineverse import AppConfig, create_app

    app = create_app(AppConfig(debug=True, database_url="sqlite:///dev.db"))
    app.run()

Or from a shell, configured through ``.env``::

    python -m cineverse
"""

__version__ = "1.0.0"
__all__ = [
    "App",
    "AppConfig",
    "AppContext",
    "CineverseError",
    "ConfigurationError",
    "HTTPError",
    "NotFound",
    "Request",
    "Response",
    "ValidationError",
    "build_context",
    "create_app",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import cineverse`` fast while providing a flat top-level API.
    """
    if name in ("App", "build_context", "create_app"):
        from cineverse import app as _app

        return getattr(_app, name)

    if name == "AppConfig":
        from cineverse.config import AppConfig

        return AppConfig

    if name == "Request":
        from cineverse.http.request import Request

        return Request

    if name == "Response":
        from cineverse.http.response import Response

        return Response

    if name in ("AppContext", "get_request"):
        from cineverse import context as _ctx

        return getattr(_ctx, name)

    if name in ("CineverseError", "ConfigurationError", "HTTPError", "NotFound", "ValidationError"):
        from cineverse import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
