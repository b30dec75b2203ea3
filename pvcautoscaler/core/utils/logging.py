"""Logging utilities for pvc-autoscaler runtime components."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from pythonjsonlogger import jsonlogger


_HANDLER_NAME = "_pvcautoscaler_stream_handler"

_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_RENAMED_FIELDS = {
    "asctime": "time",
    "levelname": "level",
    "name": "logger",
    "message": "msg",
}

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class JsonLogFormatter(jsonlogger.JsonFormatter):
    """Render each record as a single JSON object per line, ``extra=`` fields included."""

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("rename_fields", dict(_RENAMED_FIELDS))
        super().__init__(_JSON_FORMAT, **kwargs)

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

    def add_fields(self, log_record, record, message_dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname.lower()
        if "exc_info" in log_record:
            log_record["error"] = log_record.pop("exc_info")


def resolve_log_level(name: Optional[str]) -> int:
    """Map a user supplied level name to a logging level, falling back to INFO."""
    if not name:
        return logging.INFO
    return LOG_LEVELS.get(name.strip().lower(), logging.INFO)


def configure_runtime_logging(level: int = logging.INFO, formatter: Optional[logging.Formatter] = None) -> None:
    """Ensure that runtime processes emit logs to stderr with a consistent format."""
    root_logger = logging.getLogger()
    if formatter is None:
        formatter = logging.Formatter("[%(levelname)s] %(message)s")

    existing = None
    for handler in root_logger.handlers:
        if getattr(handler, _HANDLER_NAME, False):
            existing = handler
            break

    if existing is None:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_NAME, True)
        root_logger.addHandler(stream_handler)
    else:
        existing.setFormatter(formatter)
        existing.setLevel(level)

    root_logger.setLevel(level)
    # The kubernetes client logs every request body at DEBUG.
    logging.getLogger("kubernetes").setLevel(max(level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
