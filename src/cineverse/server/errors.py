"""Turn faults into error responses.

API callers (``request.expects_json``) get the JSON error envelope;
browsers get a minimal HTML page. Internal faults are logged with
their traceback and only described to the client in debug mode.
"""

import html
import logging
import traceback

from cineverse.errors import HTTPError, ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response

logger = logging.getLogger("cineverse.server")


def error_page(status: int, message: str, detail: str = "") -> str:
    """Small standalone HTML error page."""
    body = f"<pre>{html.escape(detail)}</pre>" if detail else ""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{status}</title></head><body>"
        f"<h1>{status}</h1><p>{html.escape(message)}</p>{body}"
        "</body></html>"
    )


async def handle_http_error(exc: HTTPError, request: Request, debug: bool) -> Response:
    """Render an ``HTTPError`` with its own status and headers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    message = exc.detail or f"Error {exc.status}"
    if request.expects_json:
        errors = exc.errors if isinstance(exc, ValidationError) else None
        response = Response.error(message, exc.status, errors)
    else:
        response = Response.html(error_page(exc.status, message), exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(exc: Exception, request: Request, debug: bool) -> Response:
    """Log an unexpected fault and answer 500."""
    logger.exception("500 %s %s", request.method, request.path)
    message = str(exc) or type(exc).__name__ if debug else "Internal Server Error"
    trace = "".join(traceback.format_exception(exc)) if debug else ""
    if request.expects_json:
        response = Response.error(message, 500)
        if debug:
            payload = response.json_body()
            payload["exception"] = type(exc).__name__
            payload["trace"] = trace.splitlines()
            response = Response.json(payload, 500)
        return response
    return Response.html(error_page(500, message, trace), 500)
