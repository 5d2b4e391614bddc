"""CSRF protection for browser forms.

Unsafe methods must echo the session's token in the ``_token`` form
field or the ``X-CSRF-Token`` header. API routes are token-authenticated
and skip the check.
"""

from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
FORM_FIELD = "_token"
HEADER = "x-csrf-token"


async def verify_csrf(request: Request, next: Next) -> Response:
    if request.method in SAFE_METHODS or request.path.startswith("/api/"):
        return await next(request)

    session = request.state.get("session")
    submitted = request.headers.get(HEADER)
    if not submitted and "form" in (request.content_type or ""):
        submitted = (await request.form()).get(FORM_FIELD)
    if session is None or not session.verify_csrf(submitted):
        if request.expects_json:
            return Response.forbidden("CSRF token mismatch")
        return Response.html("<h1>419 Page Expired</h1><p>CSRF token mismatch.</p>", status=403)
    return await next(request)
