"""Server-side sessions keyed by a signed cookie."""

from cineverse.sessions.backends import (
    CacheSessionBackend,
    FileSessionBackend,
    MemorySessionBackend,
    SessionBackend,
)
from cineverse.sessions.middleware import SessionConfig, SessionMiddleware, get_session
from cineverse.sessions.session import Session

__all__ = [
    "CacheSessionBackend",
    "FileSessionBackend",
    "MemorySessionBackend",
    "Session",
    "SessionBackend",
    "SessionConfig",
    "SessionMiddleware",
    "get_session",
]
