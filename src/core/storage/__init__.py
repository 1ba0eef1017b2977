"""Local persistence: backends and the collection store."""

from src.core.storage.backends import (
    FileBackend,
    KeyValueBackend,
    PersistenceBackend,
    create_backend,
)
from src.core.storage.collection_store import CollectionStore

__all__ = [
    "PersistenceBackend",
    "FileBackend",
    "KeyValueBackend",
    "create_backend",
    "CollectionStore",
]
