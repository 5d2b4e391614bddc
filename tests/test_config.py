"""Tests for cineverse.config: defaults, environment parsing, startup validation."""

from pathlib import Path

import pytest

from cineverse.config import AppConfig
from cineverse.errors import ConfigurationError

SECRETS = {"APP_KEY": "k" * 32, "JWT_SECRET": "j" * 40}


class TestAppConfig:
    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.name == "CineVerse"
        assert cfg.debug is False
        assert cfg.jwt_expiry == 3600
        assert cfg.supported_languages == ("en", "rw", "fr")
        assert cfg.session_lifetime_seconds == 7200

    def test_frozen(self) -> None:
        cfg = AppConfig()
        with pytest.raises(AttributeError):
            cfg.debug = True  # type: ignore[misc]

    def test_connections_include_default(self) -> None:
        cfg = AppConfig(database_url="sqlite:///a.db", extra_connections={"reporting": "sqlite:///b.db"})
        assert cfg.connections == {"default": "sqlite:///a.db", "reporting": "sqlite:///b.db"}


class TestValidate:
    def test_placeholder_secret_outside_debug(self) -> None:
        with pytest.raises(ConfigurationError, match="JWT_SECRET"):
            AppConfig().validate()

    def test_placeholder_secret_allowed_in_debug(self) -> None:
        AppConfig(debug=True).validate()

    def test_unknown_cache_driver(self) -> None:
        with pytest.raises(ConfigurationError, match="CACHE_DRIVER"):
            AppConfig(debug=True, cache_driver="redis").validate()

    def test_default_language_must_be_supported(self) -> None:
        with pytest.raises(ConfigurationError, match="DEFAULT_LANGUAGE"):
            AppConfig(debug=True, default_language="de").validate()


class TestFromEnv:
    def test_reads_variables(self) -> None:
        cfg = AppConfig.from_env(
            {
                **SECRETS,
                "APP_DEBUG": "yes",
                "APP_PORT": "9000",
                "SUPPORTED_LANGUAGES": "en, rw",
                "DB_URL_REPORTING": "sqlite:///reports.db",
            }
        )
        assert cfg.debug is True
        assert cfg.port == 9000
        assert cfg.supported_languages == ("en", "rw")
        assert cfg.extra_connections == {"reporting": "sqlite:///reports.db"}

    def test_bad_integer(self) -> None:
        with pytest.raises(ConfigurationError, match="APP_PORT"):
            AppConfig.from_env({**SECRETS, "APP_PORT": "eighty"})

    def test_missing_secrets_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            AppConfig.from_env({})

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("APP_KEY=from-dotenv-key\nJWT_SECRET=from-dotenv-jwt\nAPP_NAME=DotenvFlix\n")
        # registered with monkeypatch so whatever load_dotenv sets is undone
        for key in ("APP_KEY", "JWT_SECRET", "APP_NAME"):
            monkeypatch.setenv(key, "unset")
            monkeypatch.delenv(key)
        cfg = AppConfig.from_env(dotenv_path=env_file)
        assert cfg.name == "DotenvFlix"
        assert cfg.secret_key == "from-dotenv-key"
