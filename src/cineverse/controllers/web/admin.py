"""Back-office overview pages. Editing happens through the admin API."""

from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import e, pager, table
from cineverse.http.request import Request
from cineverse.http.response import Response


class AdminPages(PageController):
    __slots__ = ()

    async def index(self, request: Request) -> Response:
        stats = await self.ctx.analytics.overview()
        rows = [(k.replace("_", " ").capitalize(), v) for k, v in stats.items()]
        links = '<p><a href="/admin/users">Users</a> <a href="/admin/movies">Movies</a> <a href="/admin/analytics">Analytics</a></p>'
        return self.page(request, "Admin", links + table(("Metric", "Value"), rows))

    async def users(self, request: Request) -> Response:
        page, per_page = self.page_params(request, per_page=25)
        result = (
            await self.ctx.db.table("users")
            .select("id", "username", "email", "role", "status", "created_at")
            .order_by("id", "DESC")
            .paginate(page, per_page)
        ).to_dict()
        rows = [(u["id"], u["username"], u["email"], u["role"], u["status"], u["created_at"]) for u in result["data"]]
        content = table(("ID", "Username", "Email", "Role", "Status", "Joined"), rows) + pager("/admin/users?", result)
        return self.page(request, "Users", content)

    async def movies(self, request: Request) -> Response:
        page, per_page = self.page_params(request, per_page=25)
        result = (await self.ctx.catalog.admin_list(page, per_page)).to_dict()
        rows = [
            (m["id"], m["title"], m.get("release_year") or "", m["status"], m["view_count"], m["vote_average"])
            for m in result["data"]
        ]
        content = table(("ID", "Title", "Year", "Status", "Views", "Rating"), rows) + pager("/admin/movies?", result)
        return self.page(request, "Movies", content)

    async def analytics(self, request: Request) -> Response:
        movies = await self.ctx.analytics.movies()
        payments = await self.ctx.analytics.payments()
        engagement = await self.ctx.analytics.engagement()
        content = (
            "<h2>Most viewed</h2>"
            + table(("Title", "Views"), [(m["title"], m["view_count"]) for m in movies["most_viewed"]])
            + "<h2>Payments (30 days)</h2>"
            + table(("Status", "Count", "Amount"), [(p["status"], p["total"], p["amount"]) for p in payments["by_status"]])
            + "<h2>Engagement (30 days)</h2>"
            + table(("Event", "Count"), [(ev["event_type"], ev["total"]) for ev in engagement["events"]])
            + f"<p>Ratings: {e(engagement['ratings'])}, reviews: {e(engagement['reviews'])}</p>"
        )
        return self.page(request, "Analytics", content)
