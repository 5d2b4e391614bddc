"""Browser form errors: flash them and send the user back.

API routes let ``ValidationError`` become a 422 JSON envelope. Web
forms instead flash the field errors plus the submitted input and
redirect to the page the form came from.
"""

from cineverse.errors import ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next

# never echoed back into a form
_SECRET_FIELDS = frozenset({"password", "password_confirmation", "current_password", "_token"})


def back_url(request: Request, fallback: str = "/") -> str:
    """Same-site referrer path, or *fallback*."""
    referrer = request.referrer or ""
    if referrer.startswith("/") and not referrer.startswith("//"):
        return referrer
    host = request.headers.get("host", "")
    for scheme in ("http://", "https://"):
        prefix = f"{scheme}{host}"
        if host and referrer.startswith(prefix):
            return referrer[len(prefix) :] or "/"
    return fallback


async def flash_errors(request: Request, next: Next) -> Response:
    try:
        return await next(request)
    except ValidationError as exc:
        if request.expects_json:
            raise
        session = request.state.get("session")
        if session is None:
            raise
        old = {}
        if request.method != "GET":
            data = await request.input()
            old = {k: v for k, v in data.items() if k not in _SECRET_FIELDS and isinstance(v, str)}
        session.flash("errors", exc.errors)
        session.flash("old", old)
        session.flash("error", exc.detail or "Please correct the errors below.")
        return Response.redirect(back_url(request, request.path))
