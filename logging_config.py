from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

_CONTEXT_KEYS = (
    "device_id",
    "topic",
    "reason",
    "subscription_id",
    "report_type",
    "requester",
    "reading_count",
    "object_key",
)

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("paho", "httpx", "uvicorn.access")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append selected ``extra=`` attributes to each record as ``key=value`` pairs.

    Timestamps are rendered in UTC to match the stored readings.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(context_keys or _CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={value}"
            for key, value in ((key, getattr(record, key, None)) for key in self._context_keys)
            if value is not None
        )
        return f"{message} | {context}" if context else message


def _logging_config(level: str | int) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "context_keys": list(_CONTEXT_KEYS),
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "contextual",
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the console handler once per process."""
    global _configured
    if _configured:
        return

    dictConfig(_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
