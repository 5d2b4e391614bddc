"""Fixed-window rate limiting keyed by client IP.

Counters live in the cache store, so every worker sharing the cache
shares the limit. The window starts at a client's first request and
does not slide.
"""

from dataclasses import dataclass

from cineverse.cache.store import Cache
from cineverse.errors import TooManyRequests
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class ThrottleConfig:
    requests: int = 100
    window_seconds: int = 3600


class ThrottleMiddleware:
    """Allow ``requests`` per ``window_seconds`` per IP, then 429 with Retry-After."""

    __slots__ = ("_cache", "_config")

    def __init__(self, cache: Cache, config: ThrottleConfig | None = None) -> None:
        self._cache = cache
        self._config = config or ThrottleConfig()

    async def __call__(self, request: Request, next: Next) -> Response:
        cfg = self._config
        key = f"throttle:{request.client_ip}"
        count = await self._cache.increment(key, 1, cfg.window_seconds)
        remaining = max(0, cfg.requests - count)
        if count > cfg.requests:
            retry_after = await self._cache.ttl(key) or cfg.window_seconds
            raise TooManyRequests(max(1, retry_after))
        response = await next(request)
        return response.with_headers(
            {
                "X-RateLimit-Limit": str(cfg.requests),
                "X-RateLimit-Remaining": str(remaining),
            }
        )
