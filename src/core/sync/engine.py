# src/core/sync/engine.py
"""Reconciliation engine for the command collection.

Owns the local durable copy of the collection and the sync configuration,
and reconciles them with the single remote document:

- push: serialize the whole collection and create or update the remote
  document. The document is created at most once; its id is recorded
  before anything else can push.
- pull: fetch the remote snapshot, detect conflicting edits, and merge
  (remote wins for shared ids, local-only commands are appended).

Conflict detection is a timestamp heuristic. A conflict is reported only
when both the remote document and at least one local command changed
after the last successful sync. Concurrent edits to the same command that
slip past it are resolved in favour of the remote copy.

The engine does not serialize overlapping calls; SyncWorker does.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import tenacity

from src.core.commands.collection import CommandCollection
from src.core.commands.models import Command, dump_commands, load_commands, utc_now
from src.core.errors import (
    ConfigurationError,
    ParseFailure,
    StorageError,
    SyncError,
)
from src.core.storage.backends import PersistenceBackend
from src.core.storage.collection_store import CollectionStore
from src.core.sync.client import RemoteBlobClient
from src.core.sync.config import SyncConfig, SyncConfigStore
from src.core.sync.models import ConnectionTestResult, PullResult, SyncState, SyncStatus
from src.utils.logging import set_sync_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(error: BaseException) -> bool:
    return getattr(error, "retryable", False)


def merge_collections(local: list[Command], remote: list[Command]) -> list[Command]:
    """Merge a remote snapshot into the local collection.

    Remote commands win wholesale for every id they contain. Local commands
    whose id is absent remotely are appended after the remote ones in their
    local order.

    Args:
        local: Current local commands.
        remote: Commands from the remote document.

    Returns:
        The merged command list.
    """
    remote_ids = {cmd.id for cmd in remote}
    local_only = [cmd for cmd in local if cmd.id not in remote_ids]
    return list(remote) + local_only


def detect_conflict(
    last_sync_at: datetime | None,
    remote_modified: datetime,
    local_latest: datetime | None,
) -> bool:
    """Check whether both sides changed since the last successful sync.

    Args:
        last_sync_at: Time of the last successful push or pull.
        remote_modified: Last-modified time of the remote document.
        local_latest: Maximum updated_at across local commands.

    Returns:
        True only if a prior sync exists and both the remote document and
        some local command are strictly newer than it.
    """
    if last_sync_at is None or local_latest is None:
        return False
    return remote_modified > last_sync_at and local_latest > last_sync_at


class ReconciliationEngine:
    """Push/pull orchestration between local storage and the remote document.

    Attributes:
        collection: The in-memory command collection.
        state: Transient SyncState of the current or last operation.
        username: Account identity from the last successful credential check.
        last_save_error: Message of the last failed local save, if any.
        last_load_error: Message of the last failed local load, if any.
    """

    def __init__(
        self,
        collection: CommandCollection,
        collection_store: CollectionStore,
        config_store: SyncConfigStore,
        client: RemoteBlobClient,
        legacy_backend: PersistenceBackend | None = None,
        legacy_key: str = "sniptnote-commands",
        retry_attempts: int = 3,
        retry_max_wait: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.collection = collection
        self._collection_store = collection_store
        self._config_store = config_store
        self._client = client
        self._legacy_backend = legacy_backend
        self._legacy_key = legacy_key
        self._retry_attempts = max(1, retry_attempts)
        self._retry_max_wait = retry_max_wait
        self._clock = clock

        self.state = SyncState()
        self.username: str | None = None
        self.last_save_error: str | None = None
        self.last_load_error: str | None = None

    @property
    def config(self) -> SyncConfig:
        return self._config_store.config

    @property
    def config_store(self) -> SyncConfigStore:
        return self._config_store

    # ------------------------------------------------------------------
    # Local persistence
    # ------------------------------------------------------------------

    def load_local(self) -> list[Command]:
        """Load the durable collection into memory.

        Runs the one-time migration from the legacy key/value store when a
        legacy backend is configured. Fails closed: on any storage or parse
        error while reading, the in-memory collection is left empty and the
        error recorded. A failed write of migrated data only records
        ``last_save_error``; the legacy store is read again on next load.

        Returns:
            The loaded commands (empty on failure).
        """
        self.last_load_error = None
        try:
            migrated = None
            if self._legacy_backend is not None:
                migrated = self._collection_store.read_legacy(self._legacy_backend, self._legacy_key)
            commands = migrated if migrated is not None else self._collection_store.load()
        except (StorageError, ParseFailure) as e:
            logger.error("Failed to load commands: %s", e)
            self.last_load_error = str(e)
            self.collection.replace([])
            return []

        self.collection.replace(commands)
        if migrated is not None and self.save_local():
            logger.info("Migrated %d commands from legacy key-value storage", len(migrated))
        logger.info("Loaded %d commands", len(self.collection))
        return self.collection.commands

    def save_local(self) -> bool:
        """Write the whole in-memory collection to local storage.

        Failures are logged and recorded; the in-memory collection stays
        authoritative until the next successful save.

        Returns:
            True on success.
        """
        try:
            self._collection_store.save(self.collection.commands)
        except StorageError as e:
            logger.error("Failed to save commands: %s", e)
            self.last_save_error = str(e)
            return False
        self.last_save_error = None
        return True

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_sync_status(self) -> SyncState:
        return self.state

    def clear_sync_error(self) -> None:
        """Settle an ERROR status back to IDLE."""
        if self.state.status == SyncStatus.ERROR:
            self.state = SyncState()

    def _set_status(self, status: SyncStatus, error: str | None = None) -> None:
        self.state = SyncState(status=status, error=error)

    def _fail(self, error: Exception) -> None:
        self._set_status(SyncStatus.ERROR, str(error))

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _with_retry(self, operation: Callable[..., Awaitable[T]], *args) -> T:
        """Run an idempotent remote call, retrying errors flagged as retryable."""
        async for attempt in tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self._retry_attempts),
            wait=tenacity.wait_exponential(multiplier=1, min=0, max=self._retry_max_wait),
            retry=tenacity.retry_if_exception(_is_retryable),
            before_sleep=lambda state: logger.debug(
                "Retrying %s after network failure (attempt %d)",
                getattr(operation, "__name__", "remote call"),
                state.attempt_number,
            ),
            reraise=True,
        ):
            with attempt:
                return await operation(*args)

    def _record(self, write: Callable[[], None]) -> None:
        """Persist a config change; the in-memory value stays if the write fails."""
        try:
            write()
        except StorageError as e:
            logger.error("Failed to persist sync config: %s", e)

    def _require_configured(self, operation: str) -> SyncConfig:
        config = self.config
        if not config.enabled:
            raise ConfigurationError(f"Cannot {operation}: sync is disabled")
        if not config.token:
            raise ConfigurationError(f"Cannot {operation}: no access token configured")
        return config

    async def push(self) -> str:
        """Upload the whole local collection to the remote document.

        Creates the remote document on first push and records its id before
        returning; later pushes update it.

        Returns:
            The remote document id.

        Raises:
            ConfigurationError: If sync is disabled or no token is set.
            SyncError: On any remote failure. Local data and config are
                left untouched apart from the status.
        """
        set_sync_id(uuid.uuid4().hex[:8])
        self._set_status(SyncStatus.SYNCING)
        try:
            config = self._require_configured("push")
            # Taken before the snapshot so edits made during the request stay unsynced
            synced_at = self._clock()
            content = dump_commands(self.collection.commands)

            if config.gist_id is None:
                # Creation is not idempotent, so it is never retried
                gist_id = await self._client.create_document(config.token, content)
                self._record(lambda: self._config_store.record_gist_id(gist_id))
            else:
                gist_id = config.gist_id
                await self._with_retry(self._client.update_document, config.token, gist_id, content)
        except (SyncError, ParseFailure) as e:
            logger.warning("Push failed: %s", e)
            self._fail(e)
            raise

        self._record(lambda: self._config_store.update_last_sync_at(synced_at))
        self._set_status(SyncStatus.SUCCESS)
        logger.info("Pushed %d commands to %s", len(self.collection), gist_id)
        return gist_id

    async def pull(self) -> PullResult:
        """Fetch the remote document and merge it into the local collection.

        Returns:
            PullResult with merged=True on a clean merge, or conflict=True
            when both sides changed since the last sync. In the conflict
            case local data is left as it was and the status returns to IDLE.

        Raises:
            ConfigurationError: If sync is disabled, or the token or the
                remote document id is missing. Raised before any network call.
            SyncError: On any remote failure.
            ParseFailure: If the remote content is malformed; local data is
                not touched.
        """
        set_sync_id(uuid.uuid4().hex[:8])
        self._set_status(SyncStatus.SYNCING)
        try:
            config = self._require_configured("pull")
            if not config.gist_id:
                raise ConfigurationError("Cannot pull: no remote document has been created yet")

            content = await self._with_retry(self._client.get_document, config.token, config.gist_id)
            remote = load_commands(content)
            remote_modified = await self._with_retry(
                self._client.get_last_modified, config.token, config.gist_id
            )
        except (SyncError, ParseFailure) as e:
            logger.warning("Pull failed: %s", e)
            self._fail(e)
            raise

        if detect_conflict(config.last_sync_at, remote_modified, self.collection.latest_update()):
            logger.warning(
                "Sync conflict: remote modified at %s and local changes after last sync at %s",
                remote_modified.isoformat(),
                config.last_sync_at.isoformat() if config.last_sync_at else None,
            )
            self._set_status(SyncStatus.IDLE)
            return PullResult(merged=False, conflict=True)

        merged = merge_collections(self.collection.commands, remote)
        self.collection.replace(merged)
        self.save_local()
        self._record(lambda: self._config_store.update_last_sync_at(self._clock()))
        self._set_status(SyncStatus.SUCCESS)
        logger.info(
            "Pulled %d remote commands, %d after merge", len(remote), len(self.collection)
        )
        return PullResult(merged=True, conflict=False, count=len(self.collection))

    # ------------------------------------------------------------------
    # Credential checks
    # ------------------------------------------------------------------

    async def validate_credential(self, token: str | None = None) -> str | None:
        """Look up the account behind a token without retrying.

        Never changes the sync configuration.

        Args:
            token: Token to check; defaults to the configured one.

        Returns:
            The account identity, or None if the token is unusable.
        """
        token = self.config.token if token is None else token
        if not token:
            return None
        username = await self._client.validate_credential(token)
        if username:
            self.username = username
        return username

    async def test_connection(self) -> ConnectionTestResult:
        """Check the configured token and, if recorded, the remote document."""
        config = self.config
        if not config.token:
            return ConnectionTestResult(success=False, message="No access token configured")

        if await self.validate_credential() is None:
            return ConnectionTestResult(success=False, message="Access token is invalid")

        if config.gist_id and not await self._client.check_exists(config.token, config.gist_id):
            return ConnectionTestResult(
                success=False, message="Remote document does not exist or is not accessible"
            )

        return ConnectionTestResult(success=True, message=f"Connected as {self.username}")
