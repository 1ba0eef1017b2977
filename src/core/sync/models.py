# src/core/sync/models.py
"""Data models for the sync module."""

from dataclasses import dataclass
from enum import Enum


class SyncStatus(str, Enum):
    """Transient status of the current or last sync operation."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SyncState:
    """In-memory sync status, never persisted.

    Attributes:
        status: Current SyncStatus.
        error: Failure message when status is ERROR.
    """

    status: SyncStatus = SyncStatus.IDLE
    error: str | None = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "error": self.error}


@dataclass
class PullResult:
    """Outcome of a pull.

    Attributes:
        merged: True if the merged collection was applied locally.
        conflict: True if both sides changed since the last sync and the
            merge was aborted for manual resolution.
        count: Number of commands after the merge (0 when not merged).
    """

    merged: bool
    conflict: bool
    count: int = 0


@dataclass
class ConnectionTestResult:
    """Outcome of a connection test."""

    success: bool
    message: str
