"""Routing: an ordered route table with groups, constraints and named middleware.

Routes are registered during setup and the table is frozen on the first
dispatch.
"""

from cineverse.routing.route import Route, RouteMatch
from cineverse.routing.router import Router

__all__ = ["Route", "RouteMatch", "Router"]
