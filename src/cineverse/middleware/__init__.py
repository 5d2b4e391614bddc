"""Request middleware: ``async (request, next) -> Response`` callables."""

from cineverse.middleware.auth import AuthMiddleware, current_user, get_user, require_admin
from cineverse.middleware.cors import CORSConfig, CORSMiddleware
from cineverse.middleware.csrf import verify_csrf
from cineverse.middleware.flash import back_url, flash_errors
from cineverse.middleware.protocol import Middleware, Next
from cineverse.middleware.throttle import ThrottleConfig, ThrottleMiddleware

__all__ = [
    "AuthMiddleware",
    "CORSConfig",
    "CORSMiddleware",
    "Middleware",
    "Next",
    "ThrottleConfig",
    "ThrottleMiddleware",
    "back_url",
    "current_user",
    "flash_errors",
    "get_user",
    "require_admin",
    "verify_csrf",
]
