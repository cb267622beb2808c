"""Structured logging utilities."""

import json
import logging
import os
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with JSON formatting configured."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(os.getenv("ENTITIES_INFO_LOG_LEVEL", "INFO").upper())
    return logger


def log_selection(
    logger: logging.Logger,
    owner: str,
    action: str,
    key_count: int,
    duration_ms: Optional[int] = None,
) -> None:
    """Log a selection save/load/clear."""
    extra: Dict[str, Any] = {
        "owner": owner,
        "stage": f"selection_{action}",
        "key_count": key_count,
    }
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
    logger.info(f"Selection {action}", extra=extra)


def log_report(
    logger: logging.Logger,
    bundle_count: int,
    field_count: int,
    durations: Dict[str, int],
    owner: Optional[str] = None,
) -> None:
    """Log a completed report build."""
    extra: Dict[str, Any] = {
        "stage": "report",
        "bundle_count": bundle_count,
        "field_count": field_count,
        "durations": durations,
    }
    if owner:
        extra["owner"] = owner
    logger.info("Report built", extra=extra)
