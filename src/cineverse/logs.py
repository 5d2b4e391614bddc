"""Logging setup.

Modules log through ``logging.getLogger("cineverse.<area>")``; this
module only installs the root handler for the ``cineverse`` namespace.
"""

import json
import logging
import logging.config
from datetime import UTC, datetime
from typing import Any

from cineverse.config import AppConfig


class JSONLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: AppConfig) -> None:
    """Install a stream handler on the ``cineverse`` logger tree."""
    formatter = "json" if config.log_format == "json" else "text"
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
                "json": {"()": JSONLineFormatter},
            },
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": formatter},
            },
            "loggers": {
                "cineverse": {
                    "handlers": ["console"],
                    "level": "DEBUG" if config.debug else config.log_level.upper(),
                    "propagate": False,
                },
            },
        }
    )
