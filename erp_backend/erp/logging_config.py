"""
Structured logging configuration.

- Development: human-readable console output
- Production: JSON lines to stdout

Environment variables (read by settings):
- LOG_FORMAT: "json" or "console" (default: json when DEBUG is off)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG in debug mode)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

APP_LOGGERS = ("accounting", "invoices", "payments")

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = set(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


def get_logging_config(debug: bool = False, *, level: str | None = None, fmt: str | None = None) -> dict:
    """
    Build the Django LOGGING dict.
    """
    log_level = level or ("DEBUG" if debug else "INFO")
    log_format = fmt or ("console" if debug else "json")

    if log_format == "json":
        formatters = {"json": {"()": "erp.logging_config.JsonFormatter"}}
        formatter = "json"
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        formatter = "verbose"

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": log_level},
            "django": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "django.db.backends": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }

    for name in APP_LOGGERS:
        config["loggers"][name] = {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        }

    return config


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp, level, logger, message and any
    fields passed through `extra=`.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)
