"""Middleware protocol and the ``Next`` callable.

A middleware is any callable of the shape::

    async def my_mw(request: Request, next: Next) -> Response: ...

``next`` runs the rest of the chain. Call it at most once; return
without calling it to short-circuit (a 401, a redirect, a preflight).
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeAlias

from cineverse.http.request import Request
from cineverse.http.response import Response

Next: TypeAlias = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Functions and callable objects both satisfy this protocol."""

    async def __call__(self, request: Request, next: Next) -> Response: ...
