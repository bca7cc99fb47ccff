"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

# Third-party loggers that are chatty at INFO during every scheduler tick.
_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler")


def _formatter(structured: bool) -> dict[str, Any]:
    """Return a dictConfig formatter fragment."""
    if structured:
        return {
            "format": '{{"ts": "{asctime}", "level": "{levelname}", '
            '"logger": "{name}", "message": "{message}"}}',
            "style": "{",
        }
    return {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"}


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    level = settings.level.upper()
    quiet_level = "DEBUG" if level == "DEBUG" else "WARNING"

    dict_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": _formatter(settings.structured)},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "loggers": {name: {"level": quiet_level} for name in _QUIET_LOGGERS},
        "root": {"handlers": ["console"], "level": level},
    }

    logging.config.dictConfig(dict_config)


__all__ = ["configure_logging"]
