"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, read once at
process start, no string-key dict lookups at request time.

``AppConfig.from_env()`` is the production entry point. It loads a
``.env`` file (via python-dotenv) into the process environment, then
reads the variables the platform understands.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from cineverse.errors import ConfigurationError

_PLACEHOLDER_SECRET = "change-me"

_CACHE_DRIVERS = ("file", "memory")
_SESSION_DRIVERS = ("file", "memory", "cache")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have defaults suitable for local development. Override
    what you need::

        config = AppConfig(debug=True, database_url="sqlite:///dev.db")
    """

    # Application
    name: str = "CineVerse"
    env: str = "production"
    debug: bool = False
    url: str = "http://localhost"
    version: str = "1.0.0"
    host: str = "127.0.0.1"
    port: int = 8000

    # Security
    secret_key: str = _PLACEHOLDER_SECRET
    jwt_secret: str = _PLACEHOLDER_SECRET
    jwt_expiry: int = 3600
    jwt_algorithm: str = "HS256"

    # Database: named logical connections -> URL
    db_connection: str = "default"
    database_url: str = "sqlite:///storage/cineverse.db"
    extra_connections: Mapping[str, str] = field(default_factory=dict)
    migrations_dir: str | Path | None = Path(__file__).parent / "migrations"
    auto_migrate: bool = True

    # Cache
    cache_driver: str = "file"
    cache_path: str | Path = "storage/cache"
    cache_ttl: int = 3600

    # Sessions
    session_driver: str = "file"
    session_lifetime: int = 120  # minutes
    session_path: str | Path = "storage/sessions"
    session_cookie: str = "cineverse_session"
    session_secure: bool = False

    # Throttle
    rate_limit_requests: int = 100
    rate_limit_window: int = 3600

    # Localization
    default_language: str = "en"
    supported_languages: tuple[str, ...] = ("en", "rw", "fr")

    # Uploads
    storage_path: str | Path = "storage/uploads"

    # Payment providers (opaque credentials handed to provider clients)
    mtn_api_url: str = "https://sandbox.momodeveloper.mtn.com"
    mtn_subscription_key: str = ""
    airtel_api_url: str = "https://openapiuat.airtel.africa"
    airtel_client_id: str = ""
    airtel_client_secret: str = ""

    # Logging
    log_level: str = "info"
    log_format: str = "text"

    @property
    def connections(self) -> dict[str, str]:
        """All named connections, the default one included."""
        return {**self.extra_connections, self.db_connection: self.database_url}

    @property
    def session_lifetime_seconds(self) -> int:
        return self.session_lifetime * 60

    def validate(self) -> None:
        """Reject configurations the app cannot start with.

        Raises:
            ConfigurationError: On unknown drivers or a placeholder
                secret outside debug mode.
        """
        if self.cache_driver not in _CACHE_DRIVERS:
            msg = f"Unknown CACHE_DRIVER {self.cache_driver!r}; expected one of {_CACHE_DRIVERS}"
            raise ConfigurationError(msg)
        if self.session_driver not in _SESSION_DRIVERS:
            msg = (
                f"Unknown SESSION_DRIVER {self.session_driver!r}; "
                f"expected one of {_SESSION_DRIVERS}"
            )
            raise ConfigurationError(msg)
        if not self.debug and _PLACEHOLDER_SECRET in (self.jwt_secret, self.secret_key):
            msg = "JWT_SECRET and APP_KEY must be set when APP_DEBUG is off."
            raise ConfigurationError(msg)
        if self.default_language not in self.supported_languages:
            msg = f"DEFAULT_LANGUAGE {self.default_language!r} is not in SUPPORTED_LANGUAGES"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        *,
        dotenv_path: str | Path | None = None,
    ) -> AppConfig:
        """Build a validated config from environment variables.

        When *env* is omitted the ``.env`` file is loaded first (existing
        process variables win), then ``os.environ`` is read.
        """
        if env is None:
            load_dotenv(dotenv_path=dotenv_path, override=False)
            env = os.environ

        def get(key: str, default: str) -> str:
            return env.get(key, default)

        extra = {
            key.removeprefix("DB_URL_").lower(): value
            for key, value in env.items()
            if key.startswith("DB_URL_")
        }
        languages = tuple(
            lang.strip() for lang in get("SUPPORTED_LANGUAGES", "en,rw,fr").split(",") if lang.strip()
        )

        config = cls(
            name=get("APP_NAME", "CineVerse"),
            env=get("APP_ENV", "production"),
            debug=_parse_bool(get("APP_DEBUG", "false")),
            url=get("APP_URL", "http://localhost"),
            version=get("APP_VERSION", "1.0.0"),
            host=get("APP_HOST", "127.0.0.1"),
            port=_parse_int("APP_PORT", get("APP_PORT", "8000")),
            secret_key=get("APP_KEY", _PLACEHOLDER_SECRET),
            jwt_secret=get("JWT_SECRET", _PLACEHOLDER_SECRET),
            jwt_expiry=_parse_int("JWT_EXPIRY", get("JWT_EXPIRY", "3600")),
            db_connection=get("DB_CONNECTION", "default"),
            database_url=get("DATABASE_URL", "sqlite:///storage/cineverse.db"),
            extra_connections=extra,
            auto_migrate=_parse_bool(get("DB_AUTO_MIGRATE", "true")),
            cache_driver=get("CACHE_DRIVER", "file"),
            cache_path=get("CACHE_PATH", "storage/cache"),
            session_driver=get("SESSION_DRIVER", "file"),
            session_lifetime=_parse_int("SESSION_LIFETIME", get("SESSION_LIFETIME", "120")),
            session_path=get("SESSION_PATH", "storage/sessions"),
            session_cookie=get("SESSION_COOKIE", "cineverse_session"),
            session_secure=_parse_bool(get("SESSION_SECURE", "false")),
            rate_limit_requests=_parse_int(
                "RATE_LIMIT_REQUESTS", get("RATE_LIMIT_REQUESTS", "100")
            ),
            rate_limit_window=_parse_int("RATE_LIMIT_WINDOW", get("RATE_LIMIT_WINDOW", "3600")),
            default_language=get("DEFAULT_LANGUAGE", "en"),
            supported_languages=languages,
            storage_path=get("STORAGE_PATH", "storage/uploads"),
            mtn_api_url=get("MTN_API_URL", "https://sandbox.momodeveloper.mtn.com"),
            mtn_subscription_key=get("MTN_SUBSCRIPTION_KEY", ""),
            airtel_api_url=get("AIRTEL_API_URL", "https://openapiuat.airtel.africa"),
            airtel_client_id=get("AIRTEL_CLIENT_ID", ""),
            airtel_client_secret=get("AIRTEL_CLIENT_SECRET", ""),
            log_level=get("LOG_LEVEL", "info"),
            log_format=get("LOG_FORMAT", "text"),
        )
        config.validate()
        return config


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        msg = f"{key} must be an integer, got {value!r}"
        raise ConfigurationError(msg) from None
