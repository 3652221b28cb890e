"""
FeedFlux Logging
================

Console output goes through rich. The rotating log file, and the console when
structured logging is on, get one JSON object per record with the collector's
context (feed URL, measurement, error code, timing) as top-level keys.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler


# Record attributes promoted to top-level JSON keys when present.
CONTEXT_KEYS = (
    "component",
    "feed_url",
    "measurement",
    "database",
    "error_code",
    "error_type",
    "recoverable",
    "duration_seconds",
    "success",
)

QUIET_LIBRARIES = ("urllib3", "requests", "influxdb")


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        # FeedFluxError.to_dict() nests its details under "context"
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
            entry.setdefault("measurement", context.get("measurement"))
            entry.setdefault("feed_url", context.get("feed_url"))
            entry = {k: v for k, v in entry.items() if v is not None}

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(structured: bool) -> logging.Handler:
    if structured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        return handler

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    return handler


def setup_logger(
    name: str = "feedflux",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and file handlers to ``name``, replacing earlier ones.

    The file handler always writes JSON lines; the console uses rich unless
    ``structured`` is set.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        logger.addHandler(_console_handler(structured))

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class ComponentLogger(logging.LoggerAdapter):
    """Adds a component's fixed context to every record; per-call extras win."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(component_name: str, **context: Any) -> ComponentLogger:
    """Logger ``feedflux.<component_name>`` carrying ``context`` on each record.

    Typical keys are ``feed_url`` and ``database``; ``None`` values are left out.
    """
    extra = {"component": component_name}
    extra.update({key: value for key, value in context.items() if value is not None})
    return ComponentLogger(logging.getLogger(f"feedflux.{component_name}"), extra)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedflux.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``feedflux`` logger tree and quiet HTTP/client libraries."""
    setup_logger(
        name="feedflux",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)


class PerformanceLogger:
    """Time a block; ``duration`` holds the elapsed seconds once it exits."""

    def __init__(self, logger: logging.LoggerAdapter, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration: Optional[float] = None
        self._started = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration = time.perf_counter() - self._started
        extra = {
            **self.context,
            "duration_seconds": round(self.duration, 3),
            "success": exc_type is None,
        }

        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {self.duration:.3f}s", extra=extra)
        else:
            # the caller reports the error itself
            self.logger.debug(f"Aborted {self.operation} after {self.duration:.3f}s", extra=extra)
        return False
