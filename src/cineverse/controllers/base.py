"""Shared plumbing for controller classes.

Controllers are plain classes constructed with the ``AppContext``;
their bound methods are the route handlers. Nothing is looked up by
name at request time.
"""

from typing import Any

from cineverse.auth.models import User
from cineverse.context import AppContext
from cineverse.errors import AuthenticationError
from cineverse.http.request import Request

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


class Controller:
    __slots__ = ("ctx",)

    def __init__(self, ctx: AppContext) -> None:
        self.ctx = ctx

    @staticmethod
    def page_params(request: Request, per_page: int = DEFAULT_PER_PAGE) -> tuple[int, int]:
        """``(page, per_page)`` from the query string, clamped to sane bounds."""
        page = max(1, request.query.get_int("page", 1) or 1)
        size = request.query.get_int("per_page", per_page) or per_page
        return page, min(MAX_PER_PAGE, max(1, size))

    @staticmethod
    def user(request: Request) -> User:
        """The user the ``auth`` guard resolved."""
        user = request.state.get("user")
        if user is None:
            raise AuthenticationError("Authentication required")
        return user

    async def optional_user(self, request: Request) -> User | None:
        return await self.ctx.auth.authenticate(request)


def pick(data: dict[str, Any], *fields: str) -> dict[str, Any]:
    """Subset of *data* limited to *fields* that are present."""
    return {name: data[name] for name in fields if name in data}
