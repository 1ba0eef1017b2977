# src/core/sync/config.py
"""Durable sync configuration.

SyncConfig holds the user's sync state (credential, remote document id,
flags, last successful sync). SyncConfigStore persists it as a JSON object
through the same PersistenceBackend as the collection, coalescing rapid
field changes with a Debouncer.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.core.commands.models import format_timestamp, parse_timestamp
from src.core.errors import ParseFailure
from src.core.storage.backends import PersistenceBackend
from src.core.sync.debounce import Debouncer

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """Persisted sync configuration.

    Attributes:
        token: Bearer credential; empty means unconfigured.
        gist_id: Remote document id; None until the first push creates it.
        enabled: Gate for all sync behaviour.
        auto_sync: Gate for the implicit push after each local mutation.
        last_sync_at: Time of the last successful push or pull.
    """

    token: str = ""
    gist_id: str | None = None
    enabled: bool = False
    auto_sync: bool = True
    last_sync_at: datetime | None = None

    @property
    def is_configured(self) -> bool:
        """Sync is enabled and a credential is present."""
        return self.enabled and bool(self.token)

    @property
    def should_auto_sync(self) -> bool:
        """A local mutation should trigger a background push."""
        return self.is_configured and self.auto_sync

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase document layout."""
        return {
            "token": self.token,
            "gistId": self.gist_id,
            "enabled": self.enabled,
            "autoSync": self.auto_sync,
            "lastSyncAt": format_timestamp(self.last_sync_at) if self.last_sync_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncConfig":
        """Create from a stored document.

        A missing ``autoSync`` means True; a missing ``enabled`` means False.

        Raises:
            ParseFailure: If the document or its timestamp is malformed.
        """
        if not isinstance(data, dict):
            raise ParseFailure("Sync config document must be a JSON object")
        last_sync_at = None
        if data.get("lastSyncAt"):
            try:
                last_sync_at = parse_timestamp(data["lastSyncAt"])
            except ValueError as e:
                raise ParseFailure(f"Invalid lastSyncAt: {e}") from e
        return cls(
            token=str(data.get("token") or ""),
            gist_id=data.get("gistId") or None,
            enabled=bool(data.get("enabled", False)),
            auto_sync=data.get("autoSync") is not False,
            last_sync_at=last_sync_at,
        )


class SyncConfigStore:
    """Owns the live SyncConfig and its durable copy.

    Field setters mark the store dirty; the write happens after a short
    quiescence window or on flush(). Changes that later pushes depend on
    (the created document id, the last sync time) are written through
    immediately.

    Attributes:
        config: The live SyncConfig.
    """

    def __init__(self, backend: PersistenceBackend, key: str, debounce_seconds: float = 0.1) -> None:
        self._backend = backend
        self._key = key
        self.config = SyncConfig()
        self._debouncer = Debouncer(self._write, debounce_seconds)

    @property
    def has_pending_changes(self) -> bool:
        return self._debouncer.pending

    def load(self) -> SyncConfig:
        """Load the stored configuration, keeping defaults if none exists.

        Malformed documents are logged and replaced by defaults in memory.

        Raises:
            StorageError: If the backend read fails.
        """
        text = self._backend.read_text(self._key)
        if text:
            try:
                self.config = SyncConfig.from_dict(json.loads(text))
            except (json.JSONDecodeError, ParseFailure) as e:
                logger.error("Failed to load sync config, using defaults: %s", e)
                self.config = SyncConfig()
        logger.debug(
            "Loaded sync config (enabled=%s, auto_sync=%s, has_gist=%s)",
            self.config.enabled,
            self.config.auto_sync,
            self.config.gist_id is not None,
        )
        return self.config

    def _write(self) -> None:
        self._backend.write_text(self._key, json.dumps(self.config.to_dict(), indent=2))

    def mark_dirty(self) -> None:
        """Schedule a debounced write of the current configuration."""
        self._debouncer.mark_dirty()

    def flush(self) -> None:
        """Write pending changes now.

        Raises:
            StorageError: If the backend write fails.
        """
        self._debouncer.flush()

    def save_now(self) -> None:
        """Write the configuration immediately, pending or not."""
        self._debouncer.mark_dirty()
        self._debouncer.flush()

    def set_token(self, token: str) -> None:
        self.config.token = token
        self.mark_dirty()

    def set_gist_id(self, gist_id: str | None) -> None:
        self.config.gist_id = gist_id or None
        self.mark_dirty()

    def set_enabled(self, enabled: bool) -> None:
        self.config.enabled = enabled
        self.mark_dirty()

    def set_auto_sync(self, auto_sync: bool) -> None:
        self.config.auto_sync = auto_sync
        self.mark_dirty()

    def record_gist_id(self, gist_id: str) -> None:
        """Store a newly created document id durably before returning."""
        self.config.gist_id = gist_id
        self.save_now()

    def update_last_sync_at(self, when: datetime) -> None:
        """Record a successful sync time durably."""
        self.config.last_sync_at = when
        self.save_now()

    def shutdown(self) -> None:
        """Flush pending changes on application shutdown."""
        self.flush()
