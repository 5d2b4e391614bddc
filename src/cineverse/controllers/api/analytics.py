"""``/api/v1/analytics``: client-reported events."""

from cineverse.controllers.base import Controller
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import integer, max_length, required, validate


class AnalyticsController(Controller):
    __slots__ = ()

    async def event(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {"event": [required, max_length(100)]}).raise_for_errors()
        properties = data.get("properties")
        await self.ctx.analytics.track(
            "event",
            request,
            user=await self.optional_user(request),
            name=fields["event"],
            properties=properties if isinstance(properties, dict) else None,
        )
        return Response.success(message="Event recorded", status=201)

    async def page_view(self, request: Request) -> Response:
        fields = validate(await request.input(), {"url": [required, max_length(2000)]}).raise_for_errors()
        await self.ctx.analytics.track(
            "page_view", request, user=await self.optional_user(request), page_url=fields["url"]
        )
        return Response.success(message="Page view recorded", status=201)

    async def movie_view(self, request: Request) -> Response:
        fields = validate(await request.input(), {"movie_id": [required, integer]}).raise_for_errors()
        movie_id = int(fields["movie_id"])
        await self.ctx.catalog.movie(movie_id)
        await self.ctx.analytics.track(
            "movie_view", request, user=await self.optional_user(request), movie_id=movie_id
        )
        return Response.success(message="Movie view recorded", status=201)
