"""HTTP primitives: immutable requests, transformable responses."""

from cineverse.http.request import Request
from cineverse.http.response import Response

__all__ = ["Request", "Response"]
