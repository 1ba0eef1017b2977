"""Durable storage of the command collection.

Serializes the whole collection as one pretty-printed JSON array and hands
it to a PersistenceBackend. Also reads legacy data for the one-time
migration from the key/value store into the file backend.
"""

import logging

from src.core.commands.models import Command, dump_commands, load_commands
from src.core.storage.backends import PersistenceBackend

logger = logging.getLogger(__name__)


class CollectionStore:
    """Saves and loads the full command collection under a single key.

    Attributes:
        backend: Backend holding the document.
        key: Document key (a filename for the file backend).
    """

    def __init__(self, backend: PersistenceBackend, key: str) -> None:
        self.backend = backend
        self.key = key

    def save(self, commands: list[Command]) -> None:
        """Overwrite the stored collection with a full snapshot.

        Raises:
            StorageError: If the backend write fails.
        """
        self.backend.write_text(self.key, dump_commands(commands))
        logger.debug("Saved %d commands to %s", len(commands), self.key)

    def load(self) -> list[Command]:
        """Load the stored collection.

        Returns:
            Commands in stored order; an empty list if nothing is stored yet.

        Raises:
            StorageError: If the backend read fails.
            ParseFailure: If the stored document is malformed.
        """
        text = self.backend.read_text(self.key)
        if text is None or not text.strip():
            return []
        return load_commands(text)

    def read_legacy(self, legacy_backend: PersistenceBackend, legacy_key: str) -> list[Command] | None:
        """Read data to adopt from a legacy backend while this store is empty.

        Runs only when this store has no document and the legacy backend
        does. The caller saves the result here, after which this store is
        the sole source of truth.

        Args:
            legacy_backend: Backend that may hold pre-existing data.
            legacy_key: Key of the collection in the legacy backend.

        Returns:
            The legacy commands, or None if there is nothing to migrate.

        Raises:
            StorageError: If reading the legacy data fails.
            ParseFailure: If the legacy document is malformed.
        """
        if self.backend.exists(self.key):
            return None
        text = legacy_backend.read_text(legacy_key)
        if text is None or not text.strip():
            return None
        return load_commands(text)
