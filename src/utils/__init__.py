# src/utils/__init__.py
"""Logging and observability helpers."""

from src.utils.logging import (
    configure_logging,
    configure_structured_logging,
    get_sync_id,
    set_sync_id,
)
from src.utils.observability import setup_logfire

__all__ = [
    "setup_logfire",
    "set_sync_id",
    "get_sync_id",
    "configure_logging",
    "configure_structured_logging",
]
