# src/core/commands/service.py
"""Command operations exposed to the UI / state layer.

CommandService is the collaborator facade: every entity mutation updates
the in-memory collection, saves it locally through the engine and, when
auto-sync is on, queues a background push. The mutation returns as soon
as the local save is done; sync outcomes are only visible through
get_sync_status().
"""

import logging
from datetime import datetime

from src.core.commands.collection import CommandCollection
from src.core.commands.models import Command, CommandUpdate
from src.core.commands.query import SortKey, SortOrder, all_tags, query_commands
from src.core.sync.engine import ReconciliationEngine
from src.core.sync.models import ConnectionTestResult, PullResult, SyncState
from src.core.sync.worker import SyncWorker

logger = logging.getLogger(__name__)

_UNSET = object()


class CommandService:
    """CRUD and sync entry points for the command collection.

    Attributes:
        engine: Reconciliation engine owning persistence and sync.
        worker: Single-flight sync queue in front of the engine.

    Example:
        >>> service = CommandService(engine, worker)
        >>> service.load_commands()
        >>> cmd = service.add_command("List files", "ls -la", tags=["shell"])
        >>> service.toggle_favorite(cmd.id).favorite
        True
    """

    def __init__(self, engine: ReconciliationEngine, worker: SyncWorker) -> None:
        self.engine = engine
        self.worker = worker

    @property
    def collection(self) -> CommandCollection:
        return self.engine.collection

    @property
    def last_save_error(self) -> str | None:
        return self.engine.last_save_error

    @property
    def last_load_error(self) -> str | None:
        return self.engine.last_load_error

    def _after_mutation(self) -> None:
        """Persist locally, then trigger auto-sync if configured."""
        self.engine.save_local()
        if self.engine.config.should_auto_sync:
            self.worker.request_push()

    def load_commands(self) -> list[Command]:
        """Load the collection from local storage (empty on failure)."""
        return self.engine.load_local()

    def list_commands(
        self,
        search: str = "",
        tag: str = "",
        sort_key: SortKey = "updated_at",
        sort_order: SortOrder = "desc",
        favorites_first: bool = True,
    ) -> list[Command]:
        """Return the filtered, sorted view of the collection."""
        return query_commands(
            self.collection.commands,
            search=search,
            tag=tag,
            key=sort_key,
            order=sort_order,
            favorites_first=favorites_first,
        )

    def get_command(self, command_id: str) -> Command | None:
        return self.collection.get(command_id)

    def require_command(self, command_id: str) -> Command:
        """Strict lookup.

        Raises:
            CommandNotFoundError: If no such command exists.
        """
        return self.collection.require(command_id)

    def get_tags(self) -> list[str]:
        return all_tags(self.collection.commands)

    def add_command(
        self,
        title: str,
        command: str,
        description: str = "",
        tags: list[str] | None = None,
        favorite: bool = False,
        now: datetime | None = None,
    ) -> Command:
        """Create a command.

        Raises:
            ValueError: If the title is blank.
        """
        cmd = self.collection.add(
            title=title,
            command=command,
            description=description,
            tags=tags,
            favorite=favorite,
            now=now,
        )
        logger.info("Added command %s", cmd.id)
        self._after_mutation()
        return cmd

    def update_command(
        self,
        command_id: str,
        changes: CommandUpdate | dict,
        now: datetime | None = None,
    ) -> Command | None:
        """Apply a partial update. Returns None for an unknown id.

        Raises:
            pydantic.ValidationError: If ``changes`` tries to set id or
                timestamps, or sets a blank title.
        """
        cmd = self.collection.update(command_id, changes, now=now)
        if cmd is None:
            logger.debug("Update skipped, unknown command %s", command_id)
            return None
        self._after_mutation()
        return cmd

    def delete_command(self, command_id: str) -> bool:
        if not self.collection.delete(command_id):
            return False
        logger.info("Deleted command %s", command_id)
        self._after_mutation()
        return True

    def toggle_favorite(self, command_id: str, now: datetime | None = None) -> Command | None:
        cmd = self.collection.toggle_favorite(command_id, now=now)
        if cmd is None:
            return None
        self._after_mutation()
        return cmd

    async def manual_push(self) -> str:
        """Push now. Returns the remote document id.

        Raises:
            SyncInProgressError: If another sync is running.
            SyncError: On configuration or remote failure.
        """
        return await self.worker.push()

    async def manual_pull(self) -> PullResult:
        """Pull and merge now.

        Raises:
            SyncInProgressError: If another sync is running.
            SyncError: On configuration or remote failure.
            ParseFailure: If the remote content is malformed.
        """
        return await self.worker.pull()

    def configure_sync(
        self,
        token: str | None = None,
        gist_id: str | None | object = _UNSET,
        enabled: bool | None = None,
        auto_sync: bool | None = None,
    ) -> None:
        """Change sync settings. Only the arguments passed are applied.

        Writes are debounced by the config store. An explicit
        ``gist_id=None`` forgets the recorded remote document.
        """
        store = self.engine.config_store
        if token is not None:
            store.set_token(token)
        if gist_id is not _UNSET:
            store.set_gist_id(gist_id)
        if enabled is not None:
            store.set_enabled(enabled)
        if auto_sync is not None:
            store.set_auto_sync(auto_sync)

    def get_sync_status(self) -> SyncState:
        return self.engine.get_sync_status()

    def clear_sync_error(self) -> None:
        self.engine.clear_sync_error()

    async def validate_token(self, token: str | None = None) -> str | None:
        return await self.engine.validate_credential(token)

    async def test_connection(self) -> ConnectionTestResult:
        return await self.engine.test_connection()
