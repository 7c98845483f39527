"""
Logging for the FilmWatch worker

One JSON line per record on stdout plus rotating files under ``LOG_DIR``.
Run and film context travels on records through ``extra=``; see CONTEXT_FIELDS.
"""
import json
import logging
import logging.config
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import psutil

from .config import settings

ROOT_LOGGER = "filmwatch"

# Attributes copied from a record into the JSON line when present
CONTEXT_FIELDS = ("service", "version", "environment", "run_id", "run_kind", "film_id", "url")

# Noisy libraries, routed away from the console unless DEBUG is on
LIBRARY_LEVELS = {
    "aiohttp": "WARNING",
    "playwright": "WARNING",
    "asyncio": "WARNING",
}

_configured = False


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON object"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        metrics = getattr(record, "metrics", None)
        if metrics:
            entry.update(metrics)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Stamps every record with the service identity"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = settings.APP_NAME
        record.version = settings.VERSION
        record.environment = "development" if settings.DEBUG else "production"
        return True


def _rotating_file(filename: str, level: str, backups: int) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": os.path.join(settings.LOG_DIR, filename),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": backups,
        "encoding": "utf-8",
        "formatter": "structured",
        "filters": ["context"],
        "level": level,
    }


def build_logging_config() -> Dict[str, Any]:
    """dictConfig schema for the current settings"""
    library_handlers = ["console"] if settings.DEBUG else ["app_file"]
    loggers: Dict[str, Any] = {
        ROOT_LOGGER: {
            "handlers": ["console", "app_file", "error_file"],
            "level": settings.LOG_LEVEL,
            "propagate": False,
        },
        "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
    }
    for name, level in LIBRARY_LEVELS.items():
        loggers[name] = {
            "handlers": library_handlers,
            "level": "DEBUG" if settings.DEBUG else level,
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "simple": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "filters": {"context": {"()": ContextFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "simple" if settings.DEBUG else "structured",
                "filters": ["context"],
                "level": settings.LOG_LEVEL,
            },
            "app_file": _rotating_file("filmwatch.log", settings.LOG_LEVEL, backups=10),
            "error_file": _rotating_file("error.log", "ERROR", backups=5),
        },
        "loggers": loggers,
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def setup_logging(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger for ``name`` (usually ``__name__``)

    Handlers are installed by the first call only; later calls just look the
    logger up.
    """
    global _configured
    if not _configured:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        logging.config.dictConfig(build_logging_config())
        _configured = True
    return logging.getLogger(name or ROOT_LOGGER)


class PerformanceLogger:
    """Logs how long a block took and the process RSS when it ended"""

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.started = 0.0

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {
            **self.context,
            "metrics": {
                "duration_ms": round((time.perf_counter() - self.started) * 1000, 2),
                "memory_mb": round(psutil.Process().memory_info().rss / 1024 / 1024, 2),
            },
        }
        if exc_type is None:
            self.logger.info(f"Completed {self.operation}", extra=extra)
        else:
            self.logger.error(
                f"Failed {self.operation}: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
                extra=extra,
            )
        return False


__all__ = [
    "setup_logging",
    "build_logging_config",
    "PerformanceLogger",
    "StructuredFormatter",
    "ContextFilter",
]
