"""The signed-in user's own pages."""

from cineverse._internal.clock import db_now
from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import csrf_field, e, field_error, movie_cards, pager, table
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import date, max_length, one_of, required, validate


class DashboardController(PageController):
    __slots__ = ()

    async def index(self, request: Request) -> Response:
        user = self.user(request)
        stats = await self.ctx.analytics.user_statistics(user)
        subscription = await self.ctx.payments.current_subscription(user)
        if subscription:
            plan = f"<p>Your {e(subscription['plan_name'])} plan runs until {e(subscription['ends_at'])}.</p>"
        else:
            plan = '<p>You have no active plan. <a href="/payment/plans">Choose one</a>.</p>'
        verify = ""
        if not user.email_verified:
            verify = (
                f'<form method="post" action="/auth/resend-verification">{csrf_field(request)}'
                "<p>Your email is not verified.</p><button>Resend link</button></form>"
            )
        content = verify + plan + table(("Watchlist", "Ratings", "Reviews"), [
            (stats["watchlist"], stats["ratings"], stats["reviews"]),
        ])
        return self.page(request, f"Hello, {user.full_name or user.username}", content)

    async def profile(self, request: Request) -> Response:
        user = self.user(request)
        fields = ("first_name", "last_name", "phone", "date_of_birth", "bio")
        inputs = "".join(
            f'<label>{e(name.replace("_", " ").capitalize())} '
            f'<input name="{name}" value="{e(getattr(user, name))}"></label>{field_error(request, name)}'
            for name in fields
        )
        content = (
            f'<form method="post" action="/dashboard/profile">{csrf_field(request)}{inputs}'
            '<button type="submit">Save</button></form>'
        )
        return self.page(request, "Profile", content)

    async def update_profile(self, request: Request) -> Response:
        user = self.user(request)
        changes = validate(
            await request.input(),
            {
                "first_name": [max_length(100)],
                "last_name": [max_length(100)],
                "phone": [max_length(20)],
                "date_of_birth": [date],
                "bio": [max_length(500)],
            },
        ).raise_for_errors()
        if changes:
            await self.ctx.db.update("users", {**changes, "updated_at": db_now()}, {"id": user.id})
            await self.ctx.auth.log_activity(user.id, "profile_updated", "Profile updated", request)
        return self.flash_redirect(request, "/dashboard/profile", "success", "Profile updated.")

    async def watchlist(self, request: Request) -> Response:
        page, per_page = self.page_params(request)
        result = (await self.ctx.catalog.watchlist(self.user(request), page, per_page)).to_dict()
        return self.page(request, "My watchlist", movie_cards(result["data"]) + pager("/dashboard/watchlist?", result))

    async def settings(self, request: Request) -> Response:
        user = self.user(request)
        languages = "".join(
            f'<option value="{e(lang)}"{" selected" if lang == user.language else ""}>{e(lang)}</option>'
            for lang in self.ctx.config.supported_languages
        )
        content = (
            f'<form method="post" action="/dashboard/settings">{csrf_field(request)}'
            f'<label>Language <select name="language">{languages}</select></label>'
            "<h2>Change password</h2>"
            f'<label>Current password <input type="password" name="current_password"></label>'
            f'{field_error(request, "current_password")}'
            f'<label>New password <input type="password" name="password"></label>{field_error(request, "password")}'
            '<button type="submit">Save settings</button></form>'
        )
        return self.page(request, "Settings", content)

    async def update_settings(self, request: Request) -> Response:
        user = self.user(request)
        data = await request.input()
        fields = validate(
            data, {"language": [required, one_of(*self.ctx.config.supported_languages)]}
        ).raise_for_errors()
        if data.get("password"):
            await self.ctx.auth.change_password(user, str(data.get("current_password") or ""), str(data["password"]))
        await self.ctx.db.update("users", {"language": fields["language"], "updated_at": db_now()}, {"id": user.id})
        request.session.set("language", fields["language"])
        return self.flash_redirect(request, "/dashboard/settings", "success", "Settings saved.")
