# tests/conftest.py
"""Shared pytest fixtures for all test modules.

Provides common fixtures for:
- Temporary data directories and database paths
- Settings pointing at a temporary data directory
- An in-memory remote document store (FakeRemoteClient)
- A fully wired engine / worker / service over the file backend
"""

import os
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime, timezone

import pytest

from src.config import Settings
from src.core.commands.collection import CommandCollection
from src.core.commands.service import CommandService
from src.core.errors import AuthFailure, NotFoundError, StorageError
from src.core.storage.backends import FileBackend
from src.core.storage.collection_store import CollectionStore
from src.core.sync.config import SyncConfigStore
from src.core.sync.engine import ReconciliationEngine
from src.core.sync.worker import SyncWorker

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 3, 9, 0, tzinfo=timezone.utc)
T3 = datetime(2024, 1, 4, 9, 0, tzinfo=timezone.utc)
T4 = datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)

VALID_TOKEN = "ghp_valid"


class FakeRemoteClient:
    """In-memory RemoteBlobClient.

    Records every call in ``calls`` (including failed ones) and raises
    queued errors from ``failures[operation]`` before doing any work.
    """

    def __init__(self) -> None:
        self.documents: dict[str, str] = {}
        self.modified: dict[str, datetime] = {}
        self.identities: dict[str, str] = {VALID_TOKEN: "octocat"}
        self.failures: dict[str, list[Exception]] = {}
        self.calls: list[str] = []
        self.now = T0

    def fail(self, operation: str, *errors: Exception) -> None:
        self.failures.setdefault(operation, []).extend(errors)

    def count(self, operation: str) -> int:
        return self.calls.count(operation)

    def _enter(self, operation: str, token: str) -> None:
        self.calls.append(operation)
        queued = self.failures.get(operation)
        if queued:
            raise queued.pop(0)
        if token not in self.identities:
            raise AuthFailure("Bad credentials")

    async def create_document(self, token: str, content: str) -> str:
        self._enter("create", token)
        document_id = f"gist-{len(self.documents) + 1}"
        self.documents[document_id] = content
        self.modified[document_id] = self.now
        return document_id

    async def update_document(self, token: str, document_id: str, content: str) -> None:
        self._enter("update", token)
        if document_id not in self.documents:
            raise NotFoundError(f"Gist {document_id} not found")
        self.documents[document_id] = content
        self.modified[document_id] = self.now

    async def get_document(self, token: str, document_id: str) -> str:
        self._enter("get", token)
        if document_id not in self.documents:
            raise NotFoundError(f"Gist {document_id} not found")
        return self.documents[document_id]

    async def get_last_modified(self, token: str, document_id: str) -> datetime:
        self._enter("last_modified", token)
        if document_id not in self.modified:
            raise NotFoundError(f"Gist {document_id} not found")
        return self.modified[document_id]

    async def check_exists(self, token: str, document_id: str) -> bool:
        self.calls.append("exists")
        return token in self.identities and document_id in self.documents

    async def validate_credential(self, token: str) -> str | None:
        self.calls.append("validate")
        return self.identities.get(token)


class MemoryBackend:
    """PersistenceBackend kept in a dict, counting writes per key."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.writes: dict[str, int] = {}
        self.fail_writes = False

    def read_text(self, key: str) -> str | None:
        return self.data.get(key)

    def write_text(self, key: str, text: str) -> None:
        if self.fail_writes:
            raise StorageError(f"disk full writing {key}")
        self.data[key] = text
        self.writes[key] = self.writes.get(key, 0) + 1

    def exists(self, key: str) -> bool:
        return key in self.data


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary database file path.

    Yields:
        Path to temporary SQLite database file.
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def temp_data_dir() -> Generator[str, None, None]:
    """Create a temporary data directory.

    Yields:
        Path to temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def test_settings(temp_data_dir: str) -> Settings:
    """Settings rooted at a temporary data directory, ignoring .env."""
    return Settings(
        _env_file=None,
        data_dir=temp_data_dir,
        storage_backend="file",
        sync_retry_attempts=3,
        sync_retry_max_wait=0,
        config_debounce_seconds=0.01,
        api_auth_key="",
    )


@pytest.fixture
def remote() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def make_engine(
    temp_data_dir: str, remote: FakeRemoteClient
) -> Callable[..., ReconciliationEngine]:
    """Factory for engines over a FileBackend in the temp data dir."""

    def _make(clock: Callable[[], datetime] = lambda: T4, **kwargs) -> ReconciliationEngine:
        backend = FileBackend(temp_data_dir)
        return ReconciliationEngine(
            collection=CommandCollection(),
            collection_store=CollectionStore(backend, "commands.json"),
            config_store=SyncConfigStore(backend, "sync-config.json", debounce_seconds=0.01),
            client=remote,
            retry_attempts=kwargs.pop("retry_attempts", 3),
            retry_max_wait=0,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def engine(make_engine: Callable[..., ReconciliationEngine]) -> ReconciliationEngine:
    return make_engine()


@pytest.fixture
def configured_engine(engine: ReconciliationEngine) -> ReconciliationEngine:
    """Engine with sync enabled and a valid token."""
    engine.config.enabled = True
    engine.config.token = VALID_TOKEN
    return engine


@pytest.fixture
def service(engine: ReconciliationEngine) -> CommandService:
    return CommandService(engine, SyncWorker(engine))
