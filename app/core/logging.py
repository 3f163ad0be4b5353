"""Process-wide logging setup.

Everything goes to stdout, as text for local runs or one JSON object per
line for log shippers. Reconciliation lines (failed payment or storage step
after a side effect) carry ``operation``, ``upstream_code`` and
``identifiers`` extras; the JSON formatter keeps them as fields.

Driven by environment variables only, so it can run before Settings load.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from datetime import UTC, datetime
from typing import Any

# Extras copied into JSON output when a log call provides them.
STRUCTURED_FIELDS = (
    # request logging middleware
    "method",
    "path",
    "query",
    "status_code",
    "duration_ms",
    "client_ip",
    "user_agent",
    # orchestrators and exception handlers
    "error_type",
    "operation",
    "upstream_code",
    "identifiers",
)

# Third-party loggers kept at WARNING unless the named variable says otherwise.
LIBRARY_LOG_LEVELS = {
    "httpx": "HTTPX_LOG_LEVEL",
    "httpcore": "HTTPX_LOG_LEVEL",
    "sqlalchemy.engine": "SQL_LOG_LEVEL",
    "alembic": "SQL_LOG_LEVEL",
}


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config() -> dict[str, Any]:
    """dictConfig for the current environment.

    Env vars:
    - LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    - LOG_JSON: emit JSON lines (default: false)
    - LOG_REQUESTS: request logging middleware on/off (default: true)
    - LOG_UVICORN_ACCESS: uvicorn access log; off by default while
      LOG_REQUESTS is on so each request is logged once
    - HTTPX_LOG_LEVEL / SQL_LOG_LEVEL: library levels (default: WARNING)
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    uvicorn_access = _env_bool(
        "LOG_UVICORN_ACCESS", default=not _env_bool("LOG_REQUESTS", default=True)
    )

    loggers: dict[str, dict[str, Any]] = {
        "uvicorn": {"level": level, "propagate": True},
        "uvicorn.error": {"level": level, "propagate": True},
        "uvicorn.access": {
            "level": "INFO" if uvicorn_access else "WARNING",
            "propagate": True,
        },
    }
    for name, env_var in LIBRARY_LOG_LEVELS.items():
        loggers[name] = {
            "level": os.getenv(env_var, "WARNING").upper(),
            "propagate": True,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"},
            "json": {"()": "app.core.logging.JsonFormatter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json" if _env_bool("LOG_JSON", default=False) else "text",
                "stream": sys.stdout,
            }
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": loggers,
    }


def configure_logging() -> None:
    """Apply ``build_logging_config()`` to the stdlib logging tree."""
    logging.config.dictConfig(build_logging_config())
