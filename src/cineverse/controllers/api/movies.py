"""``/api/v1/movies``: catalog browsing plus per-user actions."""

from cineverse.controllers.base import Controller
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import between, integer, max_length, required, validate


class MovieController(Controller):
    __slots__ = ()

    async def index(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.browse(
            page,
            per_page,
            genre=request.query.get("genre") or None,
            year=request.query.get_int("year"),
            sort=request.query.get("sort", "popular") or "popular",
        )
        return Response.success(result.to_dict())

    async def search(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.search(request.query.get("q", "") or "", page, per_page)
        return Response.success(result.to_dict())

    async def trending(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.trending())

    async def popular(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.popular())

    async def top_rated(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.top_rated())

    async def upcoming(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.upcoming())

    async def now_playing(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.now_playing())

    async def genres(self, request: Request) -> Response:
        return Response.success(await self.ctx.catalog.genres())

    async def by_genre(self, request: Request, slug: str) -> Response:
        genre = await self.ctx.catalog.genre(slug)
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.browse(page, per_page, genre=slug)
        return Response.success({"genre": genre, **result.to_dict()})

    async def show(self, request: Request, movie_id: int) -> Response:
        movie = await self.ctx.catalog.movie(movie_id, count_view=True)
        user = await self.optional_user(request)
        if user is not None:
            movie["user_rating"] = await self.ctx.catalog.user_rating(user, movie_id)
        return Response.success(movie)

    async def similar(self, request: Request, movie_id: int) -> Response:
        return Response.success(await self.ctx.catalog.similar(movie_id))

    async def recommendations(self, request: Request, movie_id: int) -> Response:
        return Response.success(await self.ctx.catalog.recommendations(movie_id))

    async def add_to_watchlist(self, request: Request, movie_id: int) -> Response:
        added = await self.ctx.catalog.add_to_watchlist(self.user(request), movie_id)
        if not added:
            return Response.success({"movie_id": movie_id}, "Movie is already in your watchlist")
        return Response.success({"movie_id": movie_id}, "Movie added to watchlist", status=201)

    async def remove_from_watchlist(self, request: Request, movie_id: int) -> Response:
        removed = await self.ctx.catalog.remove_from_watchlist(self.user(request), movie_id)
        if not removed:
            return Response.not_found("Movie is not in your watchlist")
        return Response.success({"movie_id": movie_id}, "Movie removed from watchlist")

    async def rate(self, request: Request, movie_id: int) -> Response:
        fields = validate(
            await request.input(), {"rating": [required, integer, between(1, 10)]}
        ).raise_for_errors()
        result = await self.ctx.catalog.rate(self.user(request), movie_id, int(fields["rating"]))
        return Response.success(result, "Rating saved")

    async def rating(self, request: Request, movie_id: int) -> Response:
        await self.ctx.catalog.movie(movie_id)
        rating = await self.ctx.catalog.user_rating(self.user(request), movie_id)
        return Response.success({"movie_id": movie_id, "rating": rating})

    async def review(self, request: Request, movie_id: int) -> Response:
        fields = validate(
            await request.input(),
            {"title": [max_length(200)], "content": [required, max_length(5000)]},
        ).raise_for_errors()
        review = await self.ctx.catalog.review(
            self.user(request), movie_id, fields["content"], fields.get("title")
        )
        return Response.success(review, "Review posted", status=201)

    async def reviews(self, request: Request, movie_id: int) -> Response:
        await self.ctx.catalog.movie(movie_id)
        page, per_page = self.page_params(request, per_page=10)
        result = await self.ctx.catalog.reviews(movie_id, page, per_page)
        return Response.success(result.to_dict())
