"""``/api/v1/search``."""

from cineverse.controllers.base import Controller
from cineverse.http.request import Request
from cineverse.http.response import Response


class SearchController(Controller):
    __slots__ = ()

    async def movies(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.search(request.query.get("q", "") or "", page, per_page)
        return Response.success(result.to_dict())

    async def suggestions(self, request: Request) -> Response:
        rows = await self.ctx.catalog.suggestions(request.query.get("q", "") or "")
        return Response.success(rows)

    async def autocomplete(self, request: Request) -> Response:
        rows = await self.ctx.catalog.suggestions(request.query.get("q", "") or "", limit=5)
        return Response.success([row["title"] for row in rows])
