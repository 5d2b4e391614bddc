"""Route guards: ``auth`` (signed in) and ``admin`` (admin role).

API callers get JSON envelopes; browsers get redirects. The resolved
user is published on a ContextVar for the rest of the request.
"""

from contextvars import ContextVar

from cineverse.auth.manager import AuthManager
from cineverse.auth.models import User
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next

_user_var: ContextVar[User | None] = ContextVar("cineverse_user", default=None)

LOGIN_PATH = "/auth/login"


def get_user() -> User:
    """Return the user resolved by ``AuthMiddleware``.

    Raises ``LookupError`` outside a route guarded by ``auth``.
    """
    user = _user_var.get()
    if user is None:
        msg = "No authenticated user. Is the route guarded by the 'auth' middleware?"
        raise LookupError(msg)
    return user


def current_user(request: Request) -> User:
    """The user an ``auth``-guarded route was let through with."""
    user = request.state.get("user")
    if user is None:
        msg = "No authenticated user on this request."
        raise LookupError(msg)
    return user


class AuthMiddleware:
    """Reject anonymous callers.

    Usage::

        router.middleware("auth", AuthMiddleware(context.auth))
    """

    __slots__ = ("_auth",)

    def __init__(self, auth: AuthManager) -> None:
        self._auth = auth

    async def __call__(self, request: Request, next: Next) -> Response:
        user = await self._auth.authenticate(request)
        if user is None:
            if request.expects_json:
                return Response.unauthorized("Authentication required")
            session = request.state.get("session")
            if session is not None and request.method == "GET":
                session.set("intended_url", request.url)
            return Response.redirect(LOGIN_PATH)

        token = _user_var.set(user)
        try:
            return await next(request)
        finally:
            _user_var.reset(token)


async def require_admin(request: Request, next: Next) -> Response:
    """Admins only. Runs after ``auth``, which resolves the user."""
    user = request.state.get("user")
    if user is None or not user.is_admin:
        if request.expects_json:
            return Response.forbidden("Admin access required")
        session = request.state.get("session")
        if session is not None:
            session.flash("error", "You do not have permission to access that page.")
        return Response.redirect("/")
    return await next(request)
