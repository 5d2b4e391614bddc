"""CORS for the public API.

The API is token-authenticated, so any origin may call it. Preflight
``OPTIONS`` requests are answered here and never reach a handler.
"""

from dataclasses import dataclass

from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    allow_origin: str = "*"
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization", "X-Requested-With")
    max_age: int = 86400


class CORSMiddleware:
    """Adds ``Access-Control-*`` headers; answers preflight with 204.

    Usage::

        router.middleware("cors", CORSMiddleware())
    """

    __slots__ = ("_headers",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        cfg = config or CORSConfig()
        self._headers = {
            "Access-Control-Allow-Origin": cfg.allow_origin,
            "Access-Control-Allow-Methods": ", ".join(cfg.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(cfg.allow_headers),
            "Access-Control-Max-Age": str(cfg.max_age),
        }

    async def __call__(self, request: Request, next: Next) -> Response:
        if request.method == "OPTIONS":
            return Response(status=204).with_headers(self._headers)
        response = await next(request)
        return response.with_headers(self._headers)
