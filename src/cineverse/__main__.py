"""``python -m cineverse``: serve the app with uvicorn."""

from cineverse.app import create_app
from cineverse.config import AppConfig
from cineverse.logs import configure_logging


def main() -> None:
    config = AppConfig.from_env()
    configure_logging(config)
    create_app(config).run()


if __name__ == "__main__":
    main()
