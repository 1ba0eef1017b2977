# src/utils/logging.py
"""Structured logging with JSON format and sync correlation ID support.

Provides:
- JSON-formatted log output for structured logging
- Sync operation correlation ID via ContextVar, so every line logged
  during one push or pull (including background pushes) can be grouped
- Centralized logger configuration
"""

import json
import logging
from contextvars import ContextVar
from typing import Any

# Correlation ID of the sync operation running in the current context
sync_id_var: ContextVar[str] = ContextVar("sync_id", default="")


def set_sync_id(sync_id: str) -> None:
    """Set the sync correlation ID for the current context.

    Args:
        sync_id: Short unique identifier of the push or pull.
    """
    sync_id_var.set(sync_id)


def get_sync_id() -> str:
    """Get the sync correlation ID for the current context.

    Returns:
        Current sync ID, or empty string if not set.
    """
    return sync_id_var.get()


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, logger name,
    message, and optional sync_id for correlation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        sync_id = get_sync_id()
        if sync_id:
            log_data["sync_id"] = sync_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the application.

    Sets up a StreamHandler with StructuredFormatter and applies
    it to the root logger.

    Args:
        level: Logging level (default: logging.INFO).
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(level)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure root logging from the LOG_LEVEL / LOG_JSON settings.

    Args:
        level: Level name such as ``"DEBUG"``; unknown names fall back to INFO.
        json_format: Use StructuredFormatter instead of plain text.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if json_format:
        configure_structured_logging(numeric_level)
    else:
        logging.basicConfig(
            level=numeric_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
