# src/core/factory.py
"""Wiring of storage, sync and command components.

create_app() builds every long-lived object once from Settings. The
storage backend is chosen here, a single time, from
``settings.storage_backend`` and injected everywhere it is needed.

Example:
    >>> app = create_app()
    >>> app.service.load_commands()
    >>> register_lifecycle(app, get_lifecycle_manager())
"""

import logging
import os
from dataclasses import dataclass

from src.config import Settings, settings
from src.core.commands.collection import CommandCollection
from src.core.commands.service import CommandService
from src.core.errors import StorageError
from src.core.lifecycle import LifecycleManager
from src.core.storage.backends import PersistenceBackend, create_backend, create_kv_backend
from src.core.storage.collection_store import CollectionStore
from src.core.sync.client import GistClient, RemoteBlobClient
from src.core.sync.config import SyncConfigStore
from src.core.sync.engine import ReconciliationEngine
from src.core.sync.worker import SyncWorker

logger = logging.getLogger(__name__)


@dataclass
class SniptApp:
    """All components of a running application instance."""

    backend: PersistenceBackend
    config_store: SyncConfigStore
    engine: ReconciliationEngine
    worker: SyncWorker
    service: CommandService


def _legacy_backend(config: Settings) -> PersistenceBackend | None:
    """Return the key/value store to migrate from, if one exists on disk."""
    if not config.uses_file_backend:
        return None
    db_path = os.path.join(config.data_dir, config.kv_db_filename)
    if not os.path.exists(db_path):
        return None
    try:
        return create_kv_backend(config)
    except StorageError as e:
        logger.warning("Legacy key-value store unavailable, skipping migration: %s", e)
        return None


def create_app(
    config: Settings | None = None,
    client: RemoteBlobClient | None = None,
) -> SniptApp:
    """Build the application components.

    Loads the sync configuration but not the command collection; call
    ``service.load_commands()`` once the app is built.

    Args:
        config: Settings to use (defaults to the module singleton).
        client: Remote client override (defaults to a GistClient).

    Returns:
        The wired SniptApp.

    Raises:
        StorageError: If the selected storage backend cannot be opened.
    """
    config = config or settings
    backend = create_backend(config)

    if config.uses_file_backend:
        commands_key = config.commands_filename
        sync_config_key = config.sync_config_filename
    else:
        commands_key = config.kv_commands_key
        sync_config_key = config.kv_sync_config_key

    config_store = SyncConfigStore(backend, sync_config_key, config.config_debounce_seconds)
    try:
        config_store.load()
    except StorageError as e:
        logger.error("Failed to read sync config, using defaults: %s", e)

    if client is None:
        client = GistClient(
            api_base=config.gist_api_base,
            filename=config.gist_filename,
            description=config.gist_description,
            timeout=config.http_timeout,
        )

    engine = ReconciliationEngine(
        collection=CommandCollection(),
        collection_store=CollectionStore(backend, commands_key),
        config_store=config_store,
        client=client,
        legacy_backend=_legacy_backend(config),
        legacy_key=config.kv_commands_key,
        retry_attempts=config.sync_retry_attempts,
        retry_max_wait=config.sync_retry_max_wait,
    )
    worker = SyncWorker(engine)
    service = CommandService(engine, worker)

    return SniptApp(
        backend=backend,
        config_store=config_store,
        engine=engine,
        worker=worker,
        service=service,
    )


def register_lifecycle(app: SniptApp, manager: LifecycleManager) -> None:
    """Register components whose shutdown must run before exit.

    The worker is registered last so it is stopped first and its final
    push is done before the config store flushes.
    """
    manager.register("sync_config", app.config_store)
    manager.register("sync_worker", app.worker)
