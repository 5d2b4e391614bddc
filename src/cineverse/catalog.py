"""Movie catalog: listings, detail, watchlists, ratings and reviews.

Shared by the API and web controllers so both surfaces read the same
rows. Listing queries that every visitor hits (genres, trending) go
through the cache.
"""

import logging
import re
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from cineverse._internal.clock import to_db, utcnow
from cineverse.auth.models import User
from cineverse.cache.store import Cache
from cineverse.data.manager import DatabaseManager
from cineverse.data.query import Page, QueryBuilder
from cineverse.errors import NotFound, ValidationError

logger = logging.getLogger("cineverse.catalog")

LISTING_TTL = 600
GENRES_TTL = 3600
TRENDING_LIMITS = (10, 20)

SORTS: dict[str, tuple[str, str]] = {
    "popular": ("popularity", "DESC"),
    "rating": ("vote_average", "DESC"),
    "latest": ("release_date", "DESC"),
    "oldest": ("release_date", "ASC"),
    "title": ("title", "ASC"),
    "views": ("view_count", "DESC"),
}

MOVIE_FIELDS = (
    "title",
    "overview",
    "release_date",
    "runtime",
    "language",
    "poster_url",
    "backdrop_url",
    "trailer_url",
    "popularity",
    "is_featured",
    "status",
)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    return _SLUG_STRIP.sub("-", text.lower()).strip("-") or "movie"


class MovieCatalog:
    """Read and write catalog rows.

    Usage::

        catalog = MovieCatalog(db, cache)
        page = await catalog.browse(page=1, genre="drama", sort="rating")
        movie = await catalog.movie(42)
    """

    __slots__ = ("_clock", "cache", "db")

    def __init__(
        self, db: DatabaseManager, cache: Cache, *, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self.db = db
        self.cache = cache
        self._clock = clock

    def _published(self) -> QueryBuilder:
        return self.db.table("movies").where("status", "published")

    # -- Listings --

    async def browse(
        self,
        page: int = 1,
        per_page: int = 20,
        *,
        genre: str | None = None,
        year: int | None = None,
        sort: str = "popular",
    ) -> Page:
        """Published movies, filtered by genre slug and release year."""
        query = self._published().select("movies.*")
        if genre:
            query.join("movie_genres", "movie_genres.movie_id", "=", "movies.id")
            query.join("genres", "genres.id", "=", "movie_genres.genre_id")
            query.where("genres.slug", genre)
        if year:
            query.where("movies.release_year", year)
        column, direction = SORTS.get(sort, SORTS["popular"])
        query.order_by(f"movies.{column}", direction).order_by("movies.id", "DESC")
        return await query.paginate(page, per_page)

    async def search(self, term: str, page: int = 1, per_page: int = 20) -> Page:
        term = term.strip()
        if not term:
            raise ValidationError.single("q", "Enter something to search for.")
        pattern = f"%{term}%"
        query = (
            self._published()
            .where_any(("title", "overview"), "LIKE", pattern)
            .order_by("popularity", "DESC")
        )
        return await query.paginate(page, per_page)

    async def suggestions(self, term: str, limit: int = 8) -> list[dict[str, Any]]:
        """Title prefix matches for autocomplete."""
        term = term.strip()
        if len(term) < 2:
            return []
        return await (
            self._published()
            .select("id", "title", "slug", "release_year", "poster_url")
            .where_like("title", f"{term}%")
            .order_by("popularity", "DESC")
            .limit(limit)
            .get()
        )

    async def trending(self, limit: int = 20) -> list[dict[str, Any]]:
        return await self.cache.remember(
            f"movies:trending:{limit}",
            LISTING_TTL,
            lambda: (
                self._published()
                .order_by("view_count", "DESC")
                .order_by("popularity", "DESC")
                .limit(limit)
                .get()
            ),
        )

    async def popular(self, limit: int = 20) -> list[dict[str, Any]]:
        return await self._published().order_by("popularity", "DESC").limit(limit).get()

    async def top_rated(self, limit: int = 20) -> list[dict[str, Any]]:
        return await (
            self._published()
            .where("vote_count", ">", 0)
            .order_by("vote_average", "DESC")
            .order_by("vote_count", "DESC")
            .limit(limit)
            .get()
        )

    async def upcoming(self, limit: int = 20) -> list[dict[str, Any]]:
        today = self._clock().date().isoformat()
        return await (
            self._published().where("release_date", ">", today).order_by("release_date").limit(limit).get()
        )

    async def now_playing(self, limit: int = 20, window_days: int = 30) -> list[dict[str, Any]]:
        today = self._clock().date()
        since = (today - timedelta(days=window_days)).isoformat()
        return await (
            self._published()
            .where("release_date", "<=", today.isoformat())
            .where("release_date", ">=", since)
            .order_by("release_date", "DESC")
            .limit(limit)
            .get()
        )

    async def featured(self, limit: int = 10) -> list[dict[str, Any]]:
        return await self._published().where("is_featured", 1).order_by("popularity", "DESC").limit(limit).get()

    async def genres(self) -> list[dict[str, Any]]:
        return await self.cache.remember(
            "genres:all", GENRES_TTL, lambda: self.db.table("genres").order_by("name").get()
        )

    async def genre(self, slug: str) -> dict[str, Any]:
        row = await self.db.table("genres").where("slug", slug).first()
        if row is None:
            raise NotFound("Genre not found")
        return row

    # -- Detail --

    async def movie(self, movie_id: int, *, count_view: bool = False) -> dict[str, Any]:
        """One published movie with its genres.

        Raises:
            NotFound: Unknown or unpublished id.
        """
        row = await self._published().where("id", movie_id).first()
        if row is None:
            raise NotFound("Movie not found")
        if count_view:
            await self.db.table("movies").where("id", movie_id).increment("view_count")
        row["genres"] = await self.movie_genres(movie_id)
        return row

    async def movie_genres(self, movie_id: int) -> list[dict[str, Any]]:
        return await (
            self.db.table("genres")
            .select("genres.id", "genres.name", "genres.slug")
            .join("movie_genres", "movie_genres.genre_id", "=", "genres.id")
            .where("movie_genres.movie_id", movie_id)
            .order_by("genres.name")
            .get()
        )

    async def similar(self, movie_id: int, limit: int = 10) -> list[dict[str, Any]]:
        """Movies sharing at least one genre, most shared genres first."""
        await self.movie(movie_id)
        genre_ids = [g["id"] for g in await self.movie_genres(movie_id)]
        if not genre_ids:
            return []
        return await (
            self.db.table("movies")
            .select("movies.*", "COUNT(movie_genres.genre_id) AS shared_genres")
            .join("movie_genres", "movie_genres.movie_id", "=", "movies.id")
            .where_in("movie_genres.genre_id", genre_ids)
            .where("movies.id", "!=", movie_id)
            .where("movies.status", "published")
            .group_by("movies.id")
            .order_by("shared_genres", "DESC")
            .order_by("movies.popularity", "DESC")
            .limit(limit)
            .get()
        )

    async def recommendations(self, movie_id: int, limit: int = 10) -> list[dict[str, Any]]:
        """Similar movies, best rated first."""
        similar = await self.similar(movie_id, limit * 2)
        similar.sort(key=lambda m: (m.get("vote_average") or 0, m.get("popularity") or 0), reverse=True)
        return similar[:limit]

    # -- Watchlist --

    async def watchlist(self, user: User, page: int = 1, per_page: int = 20) -> Page:
        return await (
            self.db.table("watchlists")
            .select("movies.*", "watchlists.created_at AS added_at")
            .join("movies", "movies.id", "=", "watchlists.movie_id")
            .where("watchlists.user_id", user.id)
            .order_by("watchlists.id", "DESC")
            .paginate(page, per_page)
        )

    async def add_to_watchlist(self, user: User, movie_id: int) -> bool:
        """Add once; returns False when the movie was already listed."""
        await self.movie(movie_id)
        exists = await self.db.table("watchlists").where("user_id", user.id).where("movie_id", movie_id).exists()
        if exists:
            return False
        await self.db.insert("watchlists", {"user_id": user.id, "movie_id": movie_id})
        return True

    async def remove_from_watchlist(self, user: User, movie_id: int) -> bool:
        removed = await self.db.table("watchlists").where("user_id", user.id).where("movie_id", movie_id).delete()
        return removed > 0

    # -- Ratings and reviews --

    async def rate(self, user: User, movie_id: int, rating: int) -> dict[str, Any]:
        """Create or replace the user's 1-10 rating and refresh the movie's average."""
        if not 1 <= rating <= 10:
            raise ValidationError.single("rating", "Must be between 1 and 10")
        await self.movie(movie_id)
        now = to_db(self._clock())
        async with self.db.transaction():
            updated = await (
                self.db.table("ratings")
                .where("user_id", user.id)
                .where("movie_id", movie_id)
                .update({"rating": rating, "updated_at": now})
            )
            if not updated:
                await self.db.insert("ratings", {"user_id": user.id, "movie_id": movie_id, "rating": rating})
            stats = await self.db.fetch_one(
                "SELECT AVG(rating) AS average, COUNT(*) AS total FROM ratings WHERE movie_id = :movie_id",
                {"movie_id": movie_id},
            )
            average = round(float(stats["average"] or 0), 1) if stats else 0.0
            total = int(stats["total"] or 0) if stats else 0
            await self.db.update("movies", {"vote_average": average, "vote_count": total}, {"id": movie_id})
        return {"movie_id": movie_id, "rating": rating, "vote_average": average, "vote_count": total}

    async def user_rating(self, user: User, movie_id: int) -> int | None:
        row = await self.db.table("ratings").where("user_id", user.id).where("movie_id", movie_id).first()
        return None if row is None else int(row["rating"])

    async def review(self, user: User, movie_id: int, content: str, title: str | None = None) -> dict[str, Any]:
        await self.movie(movie_id)
        review_id = await self.db.insert(
            "reviews",
            {"user_id": user.id, "movie_id": movie_id, "title": title, "content": content},
        )
        return await self.db.table("reviews").where("id", review_id).first() or {}

    async def reviews(self, movie_id: int, page: int = 1, per_page: int = 10) -> Page:
        return await (
            self.db.table("reviews")
            .select("reviews.*", "users.username")
            .join("users", "users.id", "=", "reviews.user_id")
            .where("reviews.movie_id", movie_id)
            .where("reviews.status", "published")
            .order_by("reviews.id", "DESC")
            .paginate(page, per_page)
        )

    # -- Administration --

    async def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        record = {k: data[k] for k in MOVIE_FIELDS if k in data}
        record["uuid"] = str(uuid.uuid4())
        record["slug"] = f"{slugify(str(data['title']))}-{record['uuid'][:8]}"
        record["release_year"] = _year(record.get("release_date"))
        genre_ids = [int(g) for g in data.get("genre_ids") or ()]
        async with self.db.transaction():
            movie_id = await self.db.insert("movies", record)
            for genre_id in genre_ids:
                await self.db.insert("movie_genres", {"movie_id": movie_id, "genre_id": genre_id})
        await self._forget_listings()
        logger.info("Created movie %s (id=%s)", record.get("title"), movie_id)
        return await self.admin_movie(int(movie_id))

    async def update(self, movie_id: int, data: Mapping[str, Any]) -> dict[str, Any]:
        await self.admin_movie(movie_id)
        changes = {k: data[k] for k in MOVIE_FIELDS if k in data}
        if "release_date" in changes:
            changes["release_year"] = _year(changes["release_date"])
        changes["updated_at"] = to_db(self._clock())
        async with self.db.transaction():
            await self.db.update("movies", changes, {"id": movie_id})
            if "genre_ids" in data:
                await self.db.table("movie_genres").where("movie_id", movie_id).delete()
                for genre_id in data["genre_ids"] or ():
                    await self.db.insert("movie_genres", {"movie_id": movie_id, "genre_id": int(genre_id)})
        await self._forget_listings()
        return await self.admin_movie(movie_id)

    async def delete(self, movie_id: int) -> None:
        await self.admin_movie(movie_id)
        await self.db.delete("movies", {"id": movie_id})
        await self._forget_listings()

    async def admin_movie(self, movie_id: int) -> dict[str, Any]:
        """Any movie regardless of status."""
        row = await self.db.table("movies").where("id", movie_id).first()
        if row is None:
            raise NotFound("Movie not found")
        row["genres"] = await self.movie_genres(movie_id)
        return row

    async def admin_list(self, page: int = 1, per_page: int = 20, status: str | None = None) -> Page:
        query = self.db.table("movies").order_by("id", "DESC")
        if status:
            query.where("status", status)
        return await query.paginate(page, per_page)

    async def _forget_listings(self) -> None:
        for limit in TRENDING_LIMITS:
            await self.cache.forget(f"movies:trending:{limit}")
        await self.cache.forget("genres:all")


def _year(release_date: Any) -> int | None:
    if not release_date:
        return None
    try:
        return int(str(release_date)[:4])
    except ValueError:
        return None
