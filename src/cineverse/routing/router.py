"""Linear route table with groups, constraints, and named middleware.

Routes are kept in registration order and scanned front to back; the
first route whose method and full-path pattern both match wins. There
is no specificity ranking, so register literal routes (``/movies/search``)
before the parameter routes that would also match them (``/movies/{id}``).

Registration happens at startup on one thread. ``dispatch`` freezes the
table on first use, after which registration and ``constrain`` raise.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from cineverse._internal.invoke import invoke
from cineverse.errors import ConfigurationError, HTTPError, NotFound
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.protocol import Middleware, Next
from cineverse.routing.pattern import join_paths
from cineverse.routing.route import Handler, Route, RouteMatch
from cineverse.server.errors import handle_http_error, handle_internal_error
from cineverse.server.negotiation import negotiate

logger = logging.getLogger("cineverse.routing")

ANY_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


@dataclass(slots=True)
class _GroupScope:
    prefix: str
    middleware: tuple[str, ...]


class Router:
    """Registers routes and dispatches requests through them.

    Usage::

        router = Router()
        router.middleware("auth", require_user)

        def api(r: Router) -> None:
            r.get("/movies/{id}", movies.show, where={"id": r"\\d+"})
            r.post("/movies/{id}/rating", movies.rate, ["auth"])

        router.group(api, prefix="/api/v1", middleware=["cors"])
        response = await router.dispatch(request)
    """

    __slots__ = ("_frozen", "_middleware", "_routes", "_scopes", "debug")

    def __init__(self, *, debug: bool = False) -> None:
        self._routes: list[Route] = []
        self._middleware: dict[str, Middleware] = {}
        self._scopes: list[_GroupScope] = []
        self._frozen = False
        self.debug = debug

    # -- Registration --

    def register(
        self,
        method: str,
        path: str,
        handler: Handler,
        middleware: Iterable[str] = (),
        *,
        where: Mapping[str, str] | None = None,
        name: str | None = None,
    ) -> Route:
        """Append a route; group prefix and middleware are applied here."""
        self._check_not_frozen()
        prefix = "".join(scope.prefix for scope in self._scopes)
        names = tuple(name for scope in self._scopes for name in scope.middleware)
        route = Route.build(
            method,
            join_paths(prefix, path),
            handler,
            middleware=(*names, *middleware),
            constraints=where,
            name=name,
        )
        self._routes.append(route)
        return route

    def get(self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any) -> Route:
        return self.register("GET", path, handler, middleware, **kw)

    def post(self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any) -> Route:
        return self.register("POST", path, handler, middleware, **kw)

    def put(self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any) -> Route:
        return self.register("PUT", path, handler, middleware, **kw)

    def patch(
        self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any
    ) -> Route:
        return self.register("PATCH", path, handler, middleware, **kw)

    def delete(
        self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any
    ) -> Route:
        return self.register("DELETE", path, handler, middleware, **kw)

    def match_methods(
        self,
        methods: Iterable[str],
        path: str,
        handler: Handler,
        middleware: Iterable[str] = (),
        **kw: Any,
    ) -> list[Route]:
        """Register one route per method, in the order given."""
        middleware = tuple(middleware)
        return [self.register(m, path, handler, middleware, **kw) for m in methods]

    def any(
        self, path: str, handler: Handler, middleware: Iterable[str] = (), **kw: Any
    ) -> list[Route]:
        return self.match_methods(ANY_METHODS, path, handler, middleware, **kw)

    def group(
        self,
        builder: Callable[[Router], None],
        *,
        prefix: str = "",
        middleware: Iterable[str] = (),
    ) -> None:
        """Run *builder* with a prefix and middleware pushed onto the scope stack.

        The scope is popped even when *builder* raises; the exception
        propagates after the stack is restored.
        """
        with self.scoped(prefix=prefix, middleware=middleware):
            builder(self)

    @contextmanager
    def scoped(self, *, prefix: str = "", middleware: Iterable[str] = ()) -> Iterator[Router]:
        """Context-manager form of ``group``."""
        self._check_not_frozen()
        depth = len(self._scopes)
        self._scopes.append(_GroupScope(prefix, tuple(middleware)))
        try:
            yield self
        finally:
            del self._scopes[depth:]

    def constrain(self, route: Route, param: str, regex: str) -> Route:
        """Constrain *param* on an already registered route.

        The route is recompiled and swapped into its original slot, so
        match priority is unchanged. Returns the recompiled route.

        Raises:
            RuntimeError: After dispatch has started.
            ValueError: If *route* is not registered here or has no *param*.
        """
        self._check_not_frozen()
        for index, existing in enumerate(self._routes):
            if existing is route:
                updated = route.constrained(param, regex)
                self._routes[index] = updated
                return updated
        msg = f"Route {route.method} {route.template} is not registered on this router"
        raise ValueError(msg)

    def middleware(self, name: str, func: Middleware) -> None:
        """Register a named middleware for routes to reference."""
        self._middleware[name] = func

    # -- Introspection --

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    @property
    def group_depth(self) -> int:
        return len(self._scopes)

    def url_for(self, name: str, **params: Any) -> str:
        """Build the path of the route registered under *name*.

        Raises:
            LookupError: For an unknown route name or a missing parameter.
        """
        for route in self._routes:
            if route.name == name:
                path = route.template
                for param in route.param_names:
                    if param not in params:
                        msg = f"Route {name!r} needs parameter {param!r}"
                        raise LookupError(msg)
                    path = path.replace(f"{{{param}}}", str(params[param]))
                return path
        msg = f"No route named {name!r}"
        raise LookupError(msg)

    # -- Matching --

    def freeze(self) -> None:
        self._frozen = True

    def match(self, method: str, path: str) -> RouteMatch | None:
        """First route accepting *method* and *path*, or None.

        HEAD requests fall back to GET routes.
        """
        if len(path) > 1:
            path = path.rstrip("/") or "/"
        methods = (method, "GET") if method == "HEAD" else (method,)
        for route in self._routes:
            if route.method not in methods:
                continue
            params = route.match(path)
            if params is not None:
                return RouteMatch(route, params)
        return None

    async def dispatch(self, request: Request) -> Response:
        """Resolve *request* to a handler and run it inside its middleware chain.

        Every fault raised by middleware or the handler is converted
        here: ``HTTPError`` to its own status, anything else to 500.
        """
        self._frozen = True
        found = self.match(request.method, request.path)
        if found is None:
            return await handle_http_error(NotFound("Route not found"), request, self.debug)

        request = request.with_path_params(found.path_params)
        try:
            chain = self._build_chain(found.route)
            response = await chain(request)
        except HTTPError as exc:
            return await handle_http_error(exc, request, self.debug)
        except Exception as exc:
            return await handle_internal_error(exc, request, self.debug)
        if request.method == "HEAD":
            response = Response(
                status=response.status,
                content_type=response.content_type,
                headers=response.headers,
                cookies=response.cookies,
            )
        return response

    def _build_chain(self, route: Route) -> Next:
        """Wrap the terminal handler right-to-left so the first name runs outermost."""

        async def terminal(req: Request) -> Response:
            kwargs = _build_handler_kwargs(route.handler, req)
            return negotiate(await invoke(route.handler, **kwargs))

        handler: Next = terminal
        for name in reversed(route.middleware):
            try:
                mw = self._middleware[name]
            except KeyError:
                msg = f"Middleware {name!r} is not registered (route {route.template})"
                raise ConfigurationError(msg) from None

            async def link(req: Request, _mw: Middleware = mw, _next: Next = handler) -> Response:
                return await _mw(req, _next)

            handler = link
        return handler

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Routes cannot change once the router has started dispatching."
            raise RuntimeError(msg)


def _build_handler_kwargs(handler: Handler, request: Request) -> dict[str, Any]:
    """Bind ``request`` and path params to the handler's signature.

    Path params annotated ``int`` or ``float`` are converted; a value
    that does not convert is a 404 (``/movies/abc`` for an int id).
    """
    kwargs: dict[str, Any] = {}
    sig = inspect.signature(handler, eval_str=True)
    for name, param in sig.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in request.path_params:
            value = request.path_params[name]
            if param.annotation in (int, float):
                try:
                    kwargs[name] = param.annotation(value)
                except ValueError:
                    raise NotFound() from None
            else:
                kwargs[name] = value
    return kwargs
