"""Base class for the server-rendered page controllers."""

from cineverse.auth.models import User
from cineverse.controllers.base import Controller
from cineverse.controllers.web.layout import render
from cineverse.http.request import Request
from cineverse.http.response import Response


class PageController(Controller):
    __slots__ = ()

    def page(self, request: Request, title: str, content: str, *, status: int = 200) -> Response:
        return render(request, self.ctx.config.name, title, content, status=status)

    async def viewer(self, request: Request) -> User | None:
        """Resolve the signed-in user (if any) so the nav can show it."""
        return await self.ctx.auth.authenticate(request)

    @staticmethod
    def flash_redirect(request: Request, url: str, kind: str, message: str) -> Response:
        request.session.flash(kind, message)
        return Response.redirect(url)
