"""``/api/v1/admin``: back-office endpoints, behind ``auth`` and ``admin``."""

import json
import logging
from typing import Any

from cineverse._internal.clock import db_now
from cineverse.auth.models import User
from cineverse.controllers.base import Controller
from cineverse.errors import AuthorizationError, NotFound, ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import date, email, integer, max_length, number, one_of, required, url, validate

logger = logging.getLogger("cineverse.admin")

USER_STATUSES = ("active", "inactive", "suspended", "banned")
USER_ROLES = ("user", "admin")
MOVIE_STATUSES = ("draft", "published", "archived")

MOVIE_RULES = {
    "title": [max_length(255)],
    "overview": [max_length(5000)],
    "release_date": [date],
    "runtime": [integer],
    "language": [max_length(5)],
    "poster_url": [url],
    "backdrop_url": [url],
    "trailer_url": [url],
    "popularity": [number],
    "is_featured": [one_of("0", "1")],
    "status": [one_of(*MOVIE_STATUSES)],
}

_USER_COLUMNS = (
    "id",
    "uuid",
    "username",
    "email",
    "first_name",
    "last_name",
    "role",
    "status",
    "email_verified_at",
    "last_login_at",
    "created_at",
)


class AdminController(Controller):
    __slots__ = ()

    async def stats(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.overview())

    # -- Users --

    async def users(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        query = self.ctx.db.table("users").select(*_USER_COLUMNS).order_by("id", "DESC")
        term = (request.query.get("q") or "").strip()
        if term:
            query.where_any(("username", "email", "first_name", "last_name"), "LIKE", f"%{term}%")
        for column in ("role", "status"):
            value = request.query.get(column)
            if value:
                query.where(column, value)
        return Response.success((await query.paginate(page, per_page)).to_dict())

    async def show_user(self, request: Request, user_id: int) -> Response:
        user = await self._user(user_id)
        return Response.success(
            {
                "user": user.to_public(),
                "statistics": await self.ctx.analytics.user_statistics(user),
                "subscription": await self.ctx.payments.current_subscription(user),
            }
        )

    async def update_user(self, request: Request, user_id: int) -> Response:
        user = await self._user(user_id)
        changes: dict[str, Any] = validate(
            await request.input(),
            {
                "first_name": [max_length(100)],
                "last_name": [max_length(100)],
                "email": [email, max_length(255)],
                "role": [one_of(*USER_ROLES)],
            },
        ).raise_for_errors()
        if "email" in changes:
            taken = await (
                self.ctx.db.table("users").where("email", changes["email"]).where("id", "!=", user_id).exists()
            )
            if taken:
                raise ValidationError.single("email", "The email has already been taken.")
        if changes.get("role") == "user" and user.id == self.user(request).id:
            raise AuthorizationError("You cannot remove your own admin role")
        if changes:
            await self.ctx.db.update("users", {**changes, "updated_at": db_now()}, {"id": user_id})
            logger.info("Admin %d updated user %d: %s", self.user(request).id, user_id, sorted(changes))
        return Response.success({"user": (await self._user(user_id)).to_public()}, "User updated")

    async def user_status(self, request: Request, user_id: int) -> Response:
        user = await self._user(user_id)
        fields = validate(
            await request.input(), {"status": [required, one_of(*USER_STATUSES)]}
        ).raise_for_errors()
        if user.id == self.user(request).id:
            raise AuthorizationError("You cannot change your own status")
        await self.ctx.db.update("users", {"status": fields["status"], "updated_at": db_now()}, {"id": user_id})
        return Response.success({"id": user_id, "status": fields["status"]}, "User status updated")

    async def delete_user(self, request: Request, user_id: int) -> Response:
        user = await self._user(user_id)
        if user.id == self.user(request).id:
            raise AuthorizationError("You cannot delete your own account")
        await self.ctx.db.delete("users", {"id": user_id})
        logger.warning("Admin %d deleted user %d (%s)", self.user(request).id, user_id, user.username)
        return Response.success(message="User deleted")

    async def user_activities(self, request: Request, user_id: int) -> Response:
        await self._user(user_id)
        page, per_page = self.page_params(request)
        result = await (
            self.ctx.db.table("user_activities")
            .where("user_id", user_id)
            .order_by("id", "DESC")
            .paginate(page, per_page)
        )
        return Response.success(result.to_dict())

    async def _user(self, user_id: int) -> User:
        user = await self.ctx.auth.find(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    # -- Movies --

    async def movies(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.admin_list(page, per_page, request.query.get("status") or None)
        return Response.success(result.to_dict())

    async def store_movie(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {**MOVIE_RULES, "title": [required, max_length(255)]}).raise_for_errors()
        movie = await self.ctx.catalog.create({**fields, "genre_ids": _genre_ids(data)})
        return Response.success(movie, "Movie created", status=201)

    async def show_movie(self, request: Request, movie_id: int) -> Response:
        return Response.success(await self.ctx.catalog.admin_movie(movie_id))

    async def update_movie(self, request: Request, movie_id: int) -> Response:
        data = await request.input()
        changes: dict[str, Any] = validate(data, MOVIE_RULES).raise_for_errors()
        if "genre_ids" in data:
            changes["genre_ids"] = _genre_ids(data)
        movie = await self.ctx.catalog.update(movie_id, changes)
        return Response.success(movie, "Movie updated")

    async def delete_movie(self, request: Request, movie_id: int) -> Response:
        await self.ctx.catalog.delete(movie_id)
        return Response.success(message="Movie deleted")

    # -- Analytics --

    async def analytics_overview(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.overview(_days(request)))

    async def analytics_users(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.users(_days(request)))

    async def analytics_movies(self, request: Request) -> Response:
        limit = min(100, max(1, request.query.get_int("limit", 10) or 10))
        return Response.success(await self.ctx.analytics.movies(limit))

    async def analytics_payments(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.payments(_days(request)))

    async def analytics_engagement(self, request: Request) -> Response:
        return Response.success(await self.ctx.analytics.engagement(_days(request)))

    # -- Settings --

    async def settings(self, request: Request) -> Response:
        return Response.success(await self.ctx.settings.all())

    async def update_settings(self, request: Request) -> Response:
        payload = await request.json()
        if not isinstance(payload, dict) or not payload:
            raise ValidationError.single("settings", "Send a JSON object of settings to change.")
        values = payload.get("settings", payload)
        if not isinstance(values, dict):
            raise ValidationError.single("settings", "Settings must be a JSON object.")
        return Response.success(await self.ctx.settings.put(values), "Settings updated")

    async def clear_cache(self, request: Request) -> Response:
        if not await self.ctx.cache.clear():
            return Response.error("Cache could not be cleared", 500)
        logger.info("Cache cleared by admin %d", self.user(request).id)
        return Response.success(message="Cache cleared")

    # -- Translations --

    async def translations(self, request: Request) -> Response:
        page, per_page = self.page_params(request, per_page=50)
        language = request.query.get("language") or None
        return Response.success(await self.ctx.translations.index(language, page, per_page))

    async def store_translation(self, request: Request) -> Response:
        fields = validate(
            await request.input(),
            {
                "language": [required],
                "key": [required, max_length(255)],
                "value": [required],
            },
        ).raise_for_errors()
        row = await self.ctx.translations.store(fields["language"], fields["key"], fields["value"])
        return Response.success(row, "Translation saved", status=201)

    async def update_translation(self, request: Request, translation_id: int) -> Response:
        fields = validate(await request.input(), {"value": [required]}).raise_for_errors()
        row = await self.ctx.translations.update(translation_id, fields["value"])
        return Response.success(row, "Translation updated")

    async def delete_translation(self, request: Request, translation_id: int) -> Response:
        await self.ctx.translations.delete(translation_id)
        return Response.success(message="Translation deleted")

    async def import_translations(self, request: Request) -> Response:
        """Accept ``{"language", "translations": {...}}`` or a multipart JSON ``file``."""
        upload = (await request.files()).get("file")
        data = await request.input()
        if upload is not None:
            try:
                entries = json.loads(upload.content)
            except ValueError:
                raise ValidationError.single("file", "The file must contain a JSON object.") from None
        else:
            entries = data.get("translations")
        if not isinstance(entries, dict):
            raise ValidationError.single("translations", "Provide a JSON object of key/value pairs.")
        fields = validate(data, {"language": [required]}).raise_for_errors()
        count = await self.ctx.translations.import_catalog(fields["language"], entries)
        return Response.success({"imported": count}, f"Imported {count} translations")

    async def export_translations(self, request: Request) -> Response:
        language = request.query.get("language") or self.ctx.config.default_language
        entries = await self.ctx.translations.export_catalog(language)
        return Response.json(entries).with_header(
            "Content-Disposition", f'attachment; filename="translations_{language}.json"'
        )


def _days(request: Request) -> int:
    return min(365, max(1, request.query.get_int("days", 30) or 30))


def _genre_ids(data: dict[str, Any]) -> list[int]:
    raw = data.get("genre_ids") or []
    if isinstance(raw, str):
        raw = [part for part in raw.split(",") if part.strip()]
    try:
        return [int(value) for value in raw]
    except (TypeError, ValueError):
        raise ValidationError.single("genre_ids", "Genre ids must be integers.") from None
