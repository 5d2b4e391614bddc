"""``/api/v1/user``: the signed-in user's own profile and lists."""

import uuid
from pathlib import Path

from cineverse._internal.clock import db_now
from cineverse.controllers.base import Controller, pick
from cineverse.errors import ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import date, max_length, one_of, validate

AVATAR_TYPES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
AVATAR_MAX_BYTES = 2 * 1024 * 1024

PROFILE_RULES = {
    "first_name": [max_length(100)],
    "last_name": [max_length(100)],
    "phone": [max_length(20)],
    "date_of_birth": [date],
    "gender": [one_of("male", "female", "other")],
    "country": [max_length(2)],
    "bio": [max_length(500)],
}


class UserController(Controller):
    __slots__ = ()

    async def profile(self, request: Request) -> Response:
        return Response.success({"user": self.user(request).to_public()})

    async def update_profile(self, request: Request) -> Response:
        user = self.user(request)
        data = await request.input()
        rules = {**PROFILE_RULES, "language": [one_of(*self.ctx.config.supported_languages)]}
        changes = validate(data, rules).raise_for_errors()
        if changes:
            await self.ctx.db.update("users", {**changes, "updated_at": db_now()}, {"id": user.id})
            await self.ctx.auth.log_activity(user.id, "profile_updated", "Profile updated", request)
        fresh = await self.ctx.auth.find(user.id)
        return Response.success({"user": fresh.to_public() if fresh else None}, "Profile updated")

    async def avatar(self, request: Request) -> Response:
        user = self.user(request)
        upload = (await request.files()).get("avatar")
        if upload is None:
            raise ValidationError.single("avatar", "Choose an image to upload.")
        if upload.extension not in AVATAR_TYPES:
            raise ValidationError.single("avatar", "The avatar must be a JPG, PNG, GIF or WebP image.")
        if upload.size > AVATAR_MAX_BYTES:
            raise ValidationError.single("avatar", "The avatar may not be larger than 2 MB.")

        name = f"avatars/{user.id}_{uuid.uuid4().hex[:12]}{upload.extension}"
        upload.save(Path(self.ctx.config.storage_path) / name)
        await self.ctx.db.update("users", {"avatar": name, "updated_at": db_now()}, {"id": user.id})
        return Response.success({"avatar": name}, "Avatar updated")

    async def watchlist(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await self.ctx.catalog.watchlist(self.user(request), page, per_page)
        return Response.success(result.to_dict())

    async def activities(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = await (
            self.ctx.db.table("user_activities")
            .select("id", "activity_type", "description", "ip_address", "created_at")
            .where("user_id", self.user(request).id)
            .order_by("id", "DESC")
            .paginate(page, per_page)
        )
        return Response.success(result.to_dict())

    async def statistics(self, request: Request) -> Response:
        user = self.user(request)
        stats = await self.ctx.analytics.user_statistics(user)
        subscription = await self.ctx.payments.current_subscription(user)
        plan = pick(subscription, "plan_name", "plan_slug", "ends_at") if subscription else None
        return Response.success({**stats, "subscription": plan})
