"""Session middleware: signed session-id cookie, server-side data.

The cookie holds only the session id, signed with ``itsdangerous`` so a
client cannot pick an id. The data lives in a ``SessionBackend``. The
``Session`` object is reachable as ``request.session`` and through
``get_session()`` from any code running inside the request.
"""

import logging
from contextvars import ContextVar
from dataclasses import dataclass

from itsdangerous import BadSignature, URLSafeTimedSerializer

from cineverse.errors import ConfigurationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next
from cineverse.sessions.backends import SessionBackend
from cineverse.sessions.session import Session

logger = logging.getLogger("cineverse.sessions")

_session_var: ContextVar[Session | None] = ContextVar("cineverse_session", default=None)


def get_session() -> Session:
    """Return the current request's session.

    Raises ``LookupError`` if called outside a request with
    ``SessionMiddleware`` active.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is added "
            "to the app before accessing the session."
        )
        raise LookupError(msg)
    return session


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Cookie and lifetime settings. ``secret_key`` signs the id."""

    secret_key: str
    cookie_name: str = "cineverse_session"
    lifetime: int = 7200
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionMiddleware:
    """Load the session before the handler and persist it afterwards.

    Usage::

        app.add_middleware(SessionMiddleware(
            SessionConfig(secret_key=config.secret_key),
            MemorySessionBackend(),
        ))

        # In a handler:
        request.session.set("language", "rw")
    """

    __slots__ = ("_backend", "_config", "_serializer")

    def __init__(self, config: SessionConfig, backend: SessionBackend) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._backend = backend
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="cineverse.session")

    @property
    def backend(self) -> SessionBackend:
        return self._backend

    def sign(self, session_id: str) -> str:
        return self._serializer.dumps(session_id)

    def unsign(self, value: str) -> str | None:
        """The session id inside a cookie value, or None if tampered or expired."""
        try:
            session_id = self._serializer.loads(value, max_age=self._config.lifetime)
        except BadSignature:
            return None
        return session_id if isinstance(session_id, str) else None

    async def _load(self, request: Request) -> tuple[Session, bool]:
        cookie = request.cookies.get(self._config.cookie_name)
        session_id = self.unsign(cookie) if cookie else None
        if session_id is not None:
            data = await self._backend.read(session_id)
            if data is not None:
                return Session(session_id, data), True
        return Session(), False

    async def _save(self, response: Response, session: Session, existed: bool) -> Response:
        cfg = self._config
        if session.previous_id is not None:
            await self._backend.delete(session.previous_id)
        if session.destroyed:
            await self._backend.delete(session.id)
            return response.without_cookie(cfg.cookie_name, path=cfg.path)
        if not (session.modified or existed):
            return response
        # Rewrite on every request so the lifetime slides with activity.
        await self._backend.write(session.id, session.all(), cfg.lifetime)
        return response.with_cookie(
            cfg.cookie_name,
            self.sign(session.id),
            max_age=cfg.lifetime,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    async def __call__(self, request: Request, next: Next) -> Response:
        session, existed = await self._load(request)
        request.state["session"] = session
        token = _session_var.set(session)
        try:
            response = await next(request)
        finally:
            _session_var.reset(token)
        return await self._save(response, session, existed)
