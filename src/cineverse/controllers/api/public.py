"""Unauthenticated read-only API plus health and docs."""

from cineverse._internal.clock import utcnow
from cineverse.controllers.base import Controller
from cineverse.http.request import Request
from cineverse.http.response import Response


class PublicController(Controller):
    __slots__ = ()

    async def featured(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.featured())

    async def trending(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.trending(10))

    async def genres(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.genres())

    async def stats(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.platform_stats())


class SystemController(Controller):
    __slots__ = ()

    async def health(self, request: Request) -> Response:
        return Response.json(
            {
                "status": "healthy",
                "timestamp": utcnow().isoformat(),
                "version": self.ctx.config.version,
                "environment": self.ctx.config.env,
            }
        )

    async def docs(self, request: Request) -> Response:
        return Response.json(
            {
                "message": f"{self.ctx.config.name} API v1",
                "documentation": f"{self.ctx.config.url}/api/docs",
                "endpoints": {
                    "auth": "/api/v1/auth",
                    "user": "/api/v1/user",
                    "movies": "/api/v1/movies",
                    "payment": "/api/v1/payment",
                    "search": "/api/v1/search",
                    "analytics": "/api/v1/analytics",
                    "admin": "/api/v1/admin",
                    "public": "/api/v1/public",
                    "webhooks": "/api/v1/webhooks",
                },
            }
        )
