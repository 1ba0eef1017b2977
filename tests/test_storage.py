"""Tests for persistence backends, the collection store and migration."""

import json
import os

import pytest

from conftest import T0, T1
from src.config import Settings
from src.core.commands.models import Command
from src.core.errors import ParseFailure, StorageError
from src.core.storage.backends import FileBackend, KeyValueBackend, create_backend
from src.core.storage.collection_store import CollectionStore


def _sample() -> list[Command]:
    return [
        Command(id="list", title="List", command="ls -la", tags=["shell"], created_at=T0, updated_at=T0),
        Command(id="empty", title="Empty", command="", description="", tags=[], created_at=T0, updated_at=T1),
    ]


class TestFileBackend:
    """Test suite for the structured-file backend."""

    def test_creates_directory_on_write(self, temp_data_dir: str) -> None:
        """Test the private directory is created before the first write."""
        base = os.path.join(temp_data_dir, "nested", "app")
        backend = FileBackend(base)
        backend.write_text("doc.json", "[]")
        assert os.path.isfile(os.path.join(base, "doc.json"))

    def test_missing_key_reads_none(self, temp_data_dir: str) -> None:
        """Test reading a missing document returns None."""
        backend = FileBackend(temp_data_dir)
        assert backend.read_text("missing.json") is None
        assert backend.exists("missing.json") is False

    def test_write_replaces_whole_file(self, temp_data_dir: str) -> None:
        """Test a write fully overwrites the previous content."""
        backend = FileBackend(temp_data_dir)
        backend.write_text("doc.json", "a much longer first version")
        backend.write_text("doc.json", "short")
        assert backend.read_text("doc.json") == "short"
        assert [name for name in os.listdir(temp_data_dir) if name.endswith(".tmp")] == []

    def test_write_failure_raises_storage_error(self, temp_data_dir: str) -> None:
        """Test an unwritable location is reported as StorageError."""
        blocker = os.path.join(temp_data_dir, "blocker")
        with open(blocker, "w") as f:
            f.write("not a directory")
        backend = FileBackend(os.path.join(blocker, "sub"))
        with pytest.raises(StorageError):
            backend.write_text("doc.json", "[]")


class TestKeyValueBackend:
    """Test suite for the SQLite key/value backend."""

    def test_round_trip(self, temp_db: str) -> None:
        """Test text stored under a key is read back unchanged."""
        backend = KeyValueBackend(temp_db)
        assert backend.read_text("sniptnote-commands") is None
        backend.write_text("sniptnote-commands", "[]")
        backend.write_text("sniptnote-commands", "[1]")
        assert backend.read_text("sniptnote-commands") == "[1]"
        assert backend.exists("sniptnote-commands")


class TestCreateBackend:
    """Test suite for backend selection from settings."""

    def test_selects_file_backend(self, temp_data_dir: str) -> None:
        """Test the file backend is the default."""
        config = Settings(_env_file=None, data_dir=temp_data_dir)
        assert isinstance(create_backend(config), FileBackend)

    def test_selects_kv_backend(self, temp_data_dir: str) -> None:
        """Test STORAGE_BACKEND=kv selects the key/value backend."""
        config = Settings(_env_file=None, data_dir=temp_data_dir, storage_backend="kv")
        backend = create_backend(config)
        assert isinstance(backend, KeyValueBackend)
        assert backend.db_path == os.path.join(temp_data_dir, "kv.db")


class TestCollectionStore:
    """Test suite for saving and loading the whole collection."""

    @pytest.mark.parametrize("commands", [[], _sample()[:1], _sample()])
    def test_save_load_round_trip(self, temp_data_dir: str, commands: list[Command]) -> None:
        """Test save then load returns the same collection."""
        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        store.save(commands)
        assert store.load() == commands

    def test_round_trip_through_kv_backend(self, temp_db: str) -> None:
        """Test the key/value backend stores the same JSON document."""
        store = CollectionStore(KeyValueBackend(temp_db), "sniptnote-commands")
        store.save(_sample())
        assert store.load() == _sample()

    def test_saved_file_is_pretty_printed_array(self, temp_data_dir: str) -> None:
        """Test the on-disk format is an indented JSON array."""
        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        store.save(_sample())
        with open(os.path.join(temp_data_dir, "commands.json"), encoding="utf-8") as f:
            text = f.read()
        assert text.startswith("[\n  {")
        assert [item["title"] for item in json.loads(text)] == ["List", "Empty"]

    def test_load_missing_is_empty(self, temp_data_dir: str) -> None:
        """Test a missing document loads as an empty collection."""
        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        assert store.load() == []

    def test_load_corrupt_raises_parse_failure(self, temp_data_dir: str) -> None:
        """Test a truncated document is reported, not partially loaded."""
        backend = FileBackend(temp_data_dir)
        backend.write_text("commands.json", '[{"id": "a", "title": "A"')
        with pytest.raises(ParseFailure):
            CollectionStore(backend, "commands.json").load()


class TestMigration:
    """Test suite for reading legacy key/value data to migrate."""

    def test_reads_legacy_when_file_absent(self, temp_data_dir: str, temp_db: str) -> None:
        """Test legacy data is returned without writing the file yet."""
        legacy = KeyValueBackend(temp_db)
        CollectionStore(legacy, "sniptnote-commands").save(_sample())

        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        migrated = store.read_legacy(legacy, "sniptnote-commands")

        assert migrated == _sample()
        assert not os.path.exists(os.path.join(temp_data_dir, "commands.json"))

    def test_no_migration_when_file_exists(self, temp_data_dir: str, temp_db: str) -> None:
        """Test the file backend stays the source of truth once it has data."""
        legacy = KeyValueBackend(temp_db)
        CollectionStore(legacy, "sniptnote-commands").save(_sample())
        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        store.save([])

        assert store.read_legacy(legacy, "sniptnote-commands") is None
        assert store.load() == []

    def test_no_migration_when_legacy_empty(self, temp_data_dir: str, temp_db: str) -> None:
        """Test nothing happens without legacy data."""
        store = CollectionStore(FileBackend(temp_data_dir), "commands.json")
        assert store.read_legacy(KeyValueBackend(temp_db), "sniptnote-commands") is None
        assert not os.path.exists(os.path.join(temp_data_dir, "commands.json"))
