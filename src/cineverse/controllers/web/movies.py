"""Catalog pages."""

from urllib.parse import quote

from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import csrf_field, e, movie_cards, pager
from cineverse.errors import ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import between, integer, max_length, required, validate


class MoviePages(PageController):
    __slots__ = ()

    async def index(self, request: Request) -> Response:
        await self.viewer(request)
        page, per_page = self.page_params(request)
        sort = request.query.get("sort") or "popular"
        result = (await self.ctx.catalog.browse(page, per_page, sort=sort)).to_dict()
        genres = await self.ctx.catalog.genres()
        genre_links = " ".join(f'<a href="/movies/genre/{e(g["slug"])}">{e(g["name"])}</a>' for g in genres)
        content = (
            f'<div class="genres">{genre_links}</div>'
            f"{movie_cards(result['data'])}{pager(f'/movies?sort={quote(sort)}&', result)}"
        )
        return self.page(request, "Movies", content)

    async def search(self, request: Request) -> Response:
        await self.viewer(request)
        term = (request.query.get("q") or "").strip()
        form = (
            '<form action="/movies/search" method="get">'
            f'<input type="search" name="q" value="{e(term)}"> <button>Search</button></form>'
        )
        if not term:
            return self.page(request, "Search", form)
        page, per_page = self.page_params(request)
        result = (await self.ctx.catalog.search(term, page, per_page)).to_dict()
        content = (
            f"{form}<p>{result['total']} results for “{e(term)}”</p>"
            f"{movie_cards(result['data'])}{pager(f'/movies/search?q={quote(term)}&', result)}"
        )
        return self.page(request, "Search", content)

    async def genre(self, request: Request, slug: str) -> Response:
        await self.viewer(request)
        genre = await self.ctx.catalog.genre(slug)
        page, per_page = self.page_params(request)
        result = (await self.ctx.catalog.browse(page, per_page, genre=slug)).to_dict()
        content = movie_cards(result["data"]) + pager(f"/movies/genre/{quote(slug)}?", result)
        return self.page(request, genre["name"], content)

    async def show(self, request: Request, movie_id: int) -> Response:
        user = await self.viewer(request)
        movie = await self.ctx.catalog.movie(movie_id, count_view=True)
        await self.ctx.analytics.track("movie_view", request, user=user, movie_id=movie_id)
        similar = await self.ctx.catalog.similar(movie_id, 6)
        reviews = (await self.ctx.catalog.reviews(movie_id, 1, 5)).to_dict()["data"]

        genres = ", ".join(e(g["name"]) for g in movie["genres"])
        actions = ""
        if user is not None:
            token = csrf_field(request)
            mine = await self.ctx.catalog.user_rating(user, movie_id)
            actions = (
                f'<form method="post" action="/movies/{movie_id}/watchlist">{token}'
                "<button>Add to watchlist</button></form>"
                f'<form method="post" action="/movies/{movie_id}/rating">{token}'
                f'<input type="number" name="rating" min="1" max="10" value="{e(mine or "")}">'
                "<button>Rate</button></form>"
                f'<form method="post" action="/movies/{movie_id}/review">{token}'
                '<input name="title" placeholder="Title"><textarea name="content"></textarea>'
                "<button>Post review</button></form>"
            )
        review_html = "".join(
            f"<article><h3>{e(r.get('title') or '')}</h3><p>{e(r['content'])}</p>"
            f"<small>{e(r['username'])}</small></article>"
            for r in reviews
        )
        content = (
            f"<p>{e(movie.get('release_year') or '')} | {genres} | "
            f"{e(movie['vote_average'])}/10 ({e(movie['vote_count'])} votes)</p>"
            f"<p>{e(movie.get('overview') or '')}</p>{actions}"
            f"<h2>Reviews</h2>{review_html or '<p>No reviews yet.</p>'}"
            f"<h2>More like this</h2>{movie_cards(similar)}"
        )
        return self.page(request, movie["title"], content)

    async def add_to_watchlist(self, request: Request, movie_id: int) -> Response:
        added = await self.ctx.catalog.add_to_watchlist(self.user(request), movie_id)
        message = "Added to your watchlist." if added else "Already in your watchlist."
        return self.flash_redirect(request, f"/movies/{movie_id}", "success", message)

    async def remove_from_watchlist(self, request: Request, movie_id: int) -> Response:
        await self.ctx.catalog.remove_from_watchlist(self.user(request), movie_id)
        return self.flash_redirect(request, "/dashboard/watchlist", "success", "Removed from your watchlist.")

    async def rate(self, request: Request, movie_id: int) -> Response:
        fields = validate(
            await request.input(), {"rating": [required, integer, between(1, 10)]}
        ).raise_for_errors()
        await self.ctx.catalog.rate(self.user(request), movie_id, int(fields["rating"]))
        return self.flash_redirect(request, f"/movies/{movie_id}", "success", "Thanks for rating!")

    async def review(self, request: Request, movie_id: int) -> Response:
        fields = validate(
            await request.input(),
            {"title": [max_length(200)], "content": [required, max_length(5000)]},
        ).raise_for_errors()
        if len(fields["content"]) < 10:
            raise ValidationError.single("content", "Reviews must be at least 10 characters.")
        await self.ctx.catalog.review(self.user(request), movie_id, fields["content"], fields.get("title"))
        return self.flash_redirect(request, f"/movies/{movie_id}", "success", "Your review is posted.")
