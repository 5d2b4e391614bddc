"""ASGI request handling.

The only component that touches raw ASGI http scopes. Builds the
Request, runs the app-wide middleware around the router, and sends
the Response. Anything that escapes the router (a fault in global
middleware) is converted here, so no request can take the process down.
"""

from contextvars import Token

from cineverse._internal.asgi import Receive, Scope, Send
from cineverse.context import request_var
from cineverse.errors import HTTPError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Middleware, Next
from cineverse.routing.router import Router
from cineverse.server.errors import handle_http_error, handle_internal_error
from cineverse.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Middleware, ...],
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)
    try:
        handler: Next = router.dispatch
        for mw in reversed(middleware):

            async def link(req: Request, _mw: Middleware = mw, _next: Next = handler) -> Response:
                return await _mw(req, _next)

            handler = link

        response = await handler(request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, debug)
    finally:
        request_var.reset(token)

    await send_response(response, send)
