"""Per-request context variables and the application context.

``request_var`` holds the current Request for code that cannot take it
as a parameter (activity logging deep inside a service). Everything
else receives its collaborators explicitly through ``AppContext``.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging

    from cineverse.analytics import Analytics
    from cineverse.auth.manager import AuthManager
    from cineverse.cache.store import Cache
    from cineverse.catalog import MovieCatalog
    from cineverse.config import AppConfig
    from cineverse.data.manager import DatabaseManager
    from cineverse.http.request import Request
    from cineverse.payments.service import PaymentService
    from cineverse.security.tokens import TokenService
    from cineverse.sessions.backends import SessionBackend
    from cineverse.settings import Settings, Translations

request_var: ContextVar[Request] = ContextVar("cineverse_request")


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` outside a request.
    """
    return request_var.get()


@dataclass(frozen=True, slots=True)
class AppContext:
    """Every long-lived collaborator, built once at startup.

    Controllers receive this in their constructor; there is no global
    container and no lookup by string name.
    """

    config: AppConfig
    db: DatabaseManager
    cache: Cache
    sessions: SessionBackend
    tokens: TokenService
    auth: AuthManager
    payments: PaymentService
    catalog: MovieCatalog
    analytics: Analytics
    settings: Settings
    translations: Translations
    logger: logging.Logger
