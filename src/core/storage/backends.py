# src/core/storage/backends.py
"""Persistence backends for local JSON documents.

Two interchangeable implementations of PersistenceBackend:

- FileBackend: one JSON file per document under an application-private
  directory, created on first write. Writes replace the whole file.
- KeyValueBackend: a local-storage style key/value table in SQLite, one
  row per document key.

The backend is chosen once from Settings.storage_backend via
create_backend() and injected into the stores that use it.
"""

import logging
import os
import sqlite3
import tempfile
from typing import Protocol, runtime_checkable

from src.config import Settings
from src.core.errors import StorageError

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceBackend(Protocol):
    """Protocol for storing whole text documents under a key."""

    def read_text(self, key: str) -> str | None:
        """Return the stored text, or None if the key has never been written."""
        ...

    def write_text(self, key: str, text: str) -> None:
        """Replace the stored text for the key."""
        ...

    def exists(self, key: str) -> bool:
        """Check whether the key currently holds a document."""
        ...


class FileBackend:
    """Stores each document as a file inside ``base_dir``.

    Attributes:
        base_dir: Application-private storage directory.
    """

    def __init__(self, base_dir: str) -> None:
        self.base_dir = base_dir

    def _path(self, key: str) -> str:
        return os.path.join(self.base_dir, key)

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._path(key))

    def read_text(self, key: str) -> str | None:
        path = self._path(key)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def write_text(self, key: str, text: str) -> None:
        """Write the document through a temp file and atomic rename.

        Raises:
            StorageError: If the directory cannot be created or the write fails.
        """
        path = self._path(key)
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug("Wrote %d bytes to %s", len(text), path)


class KeyValueBackend:
    """Local-storage style key/value store backed by SQLite.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the store, creating the directory and table if needed.

        Raises:
            StorageError: If the database cannot be initialized.
        """
        self.db_path = db_path

        db_dir = os.path.dirname(db_path)
        try:
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open key-value store {db_path}: {e}") from e

    def _init_db(self) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def exists(self, key: str) -> bool:
        return self.read_text(key) is not None

    def read_text(self, key: str) -> str | None:
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read key {key}: {e}") from e
        return row[0] if row else None

    def write_text(self, key: str, text: str) -> None:
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                    (key, text),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write key {key}: {e}") from e


def create_kv_backend(config: Settings) -> KeyValueBackend:
    """Build the key/value backend at its configured location."""
    return KeyValueBackend(os.path.join(config.data_dir, config.kv_db_filename))


def create_backend(config: Settings) -> PersistenceBackend:
    """Build the backend selected by ``config.storage_backend``.

    Args:
        config: Application settings.

    Returns:
        The selected PersistenceBackend.
    """
    if config.uses_file_backend:
        logger.info("Using file storage backend at %s", config.data_dir)
        return FileBackend(config.data_dir)
    logger.info("Using key-value storage backend at %s", config.data_dir)
    return create_kv_backend(config)
