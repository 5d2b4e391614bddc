"""Route and match types.

A Route is frozen: its compiled matcher is derived from the template
and constraint map when the Route is built, so the two can never
disagree. Changing a constraint builds a new Route.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias

from cineverse.routing.pattern import compile_template

Handler: TypeAlias = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route.

    ``param_names`` are read off the template in declaration order and
    line up positionally with the matcher's capture groups.
    """

    method: str
    template: str
    handler: Handler
    pattern: re.Pattern[str]
    param_names: tuple[str, ...]
    middleware: tuple[str, ...] = ()
    constraints: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    name: str | None = None

    @classmethod
    def build(
        cls,
        method: str,
        template: str,
        handler: Handler,
        *,
        middleware: tuple[str, ...] = (),
        constraints: Mapping[str, str] | None = None,
        name: str | None = None,
    ) -> Route:
        """Compile *template* with *constraints* and return the finished Route."""
        constraints = dict(constraints or {})
        pattern, names = compile_template(template, constraints)
        unknown = set(constraints) - set(names)
        if unknown:
            msg = f"Constraint for unknown parameter(s) {sorted(unknown)} on {template!r}"
            raise ValueError(msg)
        return cls(
            method=method.upper(),
            template=template,
            handler=handler,
            pattern=pattern,
            param_names=names,
            middleware=middleware,
            constraints=MappingProxyType(constraints),
            name=name,
        )

    def constrained(self, param: str, regex: str) -> Route:
        """Return a recompiled copy with *param* constrained to *regex*."""
        return Route.build(
            self.method,
            self.template,
            self.handler,
            middleware=self.middleware,
            constraints={**self.constraints, param: regex},
            name=self.name,
        )

    def match(self, path: str) -> dict[str, str] | None:
        """Path params if *path* matches the whole pattern, else None."""
        m = self.pattern.fullmatch(path)
        if m is None:
            return None
        return {name: m.group(f"p{index}") for index, name in enumerate(self.param_names)}


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
