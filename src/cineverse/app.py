"""CineVerse application class.

Mutable during setup (routes, middleware, lifecycle hooks). Frozen on
the first request or at lifespan startup, after which the route table
cannot change.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from cineverse._internal.asgi import Receive, Scope, Send
from cineverse.analytics import Analytics
from cineverse.auth.manager import AuthManager
from cineverse.cache.backends import CacheBackend, FileCacheBackend, MemoryCacheBackend
from cineverse.cache.store import Cache
from cineverse.catalog import MovieCatalog
from cineverse.config import AppConfig
from cineverse.context import AppContext
from cineverse.controllers import build_controllers
from cineverse.data.manager import DatabaseManager
from cineverse.data.migrate import migrate
from cineverse.middleware.auth import AuthMiddleware, require_admin
from cineverse.middleware.cors import CORSMiddleware
from cineverse.middleware.csrf import verify_csrf
from cineverse.middleware.flash import flash_errors
from cineverse.middleware.protocol import Middleware
from cineverse.middleware.throttle import ThrottleConfig, ThrottleMiddleware
from cineverse.payments.providers import AIRTEL, MTN, PaymentProvider, SandboxProvider
from cineverse.payments.service import PaymentService
from cineverse.routes import register_routes
from cineverse.routing.router import Router
from cineverse.security.tokens import TokenService
from cineverse.server.handler import handle_request
from cineverse.sessions.backends import (
    CacheSessionBackend,
    FileSessionBackend,
    MemorySessionBackend,
    SessionBackend,
)
from cineverse.sessions.middleware import SessionConfig, SessionMiddleware
from cineverse.settings import Settings, Translations

logger = logging.getLogger("cineverse.app")


class App:
    """The CineVerse ASGI application.

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock and a
        double check so exactly one thread freezes the app even when
        several workers receive their first request at once.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "context",
        "router",
    )

    def __init__(self, config: AppConfig | None = None, context: AppContext | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.context = context or build_context(self.config)
        self.router = Router(debug=self.config.debug)
        self._middleware: list[Middleware] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()

    # -- Setup --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add app-wide middleware. The first added runs outermost."""
        self._check_not_frozen()
        self._middleware.append(middleware)

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook run in order during lifespan startup. Usable as a decorator."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with uvicorn. Blocks until the server stops."""
        import uvicorn

        self._ensure_frozen()
        uvicorn.run(
            self,
            host=host or self.config.host,
            port=port or self.config.port,
            log_level=self.config.log_level.lower(),
            lifespan="on",
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        await handle_request(
            scope,
            receive,
            send,
            router=self.router,
            middleware=tuple(self._middleware),
            debug=self.config.debug,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                logger.info("%s started (%s)", self.config.name, self.config.env)
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Freeze, migrate when configured, then run the startup hooks in order."""
        self._ensure_frozen()
        if self.config.auto_migrate and self.config.migrations_dir is not None:
            await migrate(self.context.db.connection(), self.config.migrations_dir)
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result
        await self.context.db.disconnect_all()

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self.router.freeze()
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot modify the app after it has started serving requests."
            raise RuntimeError(msg)


def _cache_backend(config: AppConfig) -> CacheBackend:
    if config.cache_driver == "memory":
        return MemoryCacheBackend()
    return FileCacheBackend(Path(config.cache_path))


def _session_backend(config: AppConfig, cache: Cache) -> SessionBackend:
    match config.session_driver:
        case "memory":
            return MemorySessionBackend()
        case "cache":
            return CacheSessionBackend(cache)
        case _:
            return FileSessionBackend(Path(config.session_path))


def build_context(
    config: AppConfig,
    *,
    providers: Mapping[str, PaymentProvider] | None = None,
) -> AppContext:
    """Construct every long-lived service from *config*.

    Payment providers default to sandboxes that accept every request
    and wait for a webhook.
    """
    config.validate()
    db = DatabaseManager(config.connections, default=config.db_connection)
    cache = Cache(_cache_backend(config), default_ttl=config.cache_ttl)
    tokens = TokenService(
        config.jwt_secret,
        cache=cache,
        issuer=config.url,
        expiry=config.jwt_expiry,
        algorithm=config.jwt_algorithm,
    )
    if providers is None:
        providers = {MTN: SandboxProvider(MTN), AIRTEL: SandboxProvider(AIRTEL)}
    return AppContext(
        config=config,
        db=db,
        cache=cache,
        sessions=_session_backend(config, cache),
        tokens=tokens,
        auth=AuthManager(db, tokens),
        payments=PaymentService(db, cache, providers),
        catalog=MovieCatalog(db, cache),
        analytics=Analytics(db),
        settings=Settings(db, cache),
        translations=Translations(db, config.supported_languages),
        logger=logging.getLogger("cineverse"),
    )


def create_app(config: AppConfig | None = None, context: AppContext | None = None) -> App:
    """Wire the context, middleware and every route into a ready App."""
    config = config or AppConfig.from_env()
    app = App(config, context)
    ctx = app.context

    app.add_middleware(
        SessionMiddleware(
            SessionConfig(
                secret_key=config.secret_key,
                cookie_name=config.session_cookie,
                lifetime=config.session_lifetime_seconds,
                secure=config.session_secure,
            ),
            ctx.sessions,
        )
    )

    router = app.router
    router.middleware("cors", CORSMiddleware())
    router.middleware("auth", AuthMiddleware(ctx.auth))
    router.middleware("admin", require_admin)
    router.middleware(
        "throttle",
        ThrottleMiddleware(
            ctx.cache,
            ThrottleConfig(requests=config.rate_limit_requests, window_seconds=config.rate_limit_window),
        ),
    )
    router.middleware("csrf", verify_csrf)
    router.middleware("flash_errors", flash_errors)
    register_routes(router, build_controllers(ctx))
    return app
