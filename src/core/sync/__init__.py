"""Sync module for replicating the collection through a remote document.

This module provides:
- RemoteBlobClient / GistClient: Remote single-document store
- SyncConfig / SyncConfigStore: Durable sync settings with debounced writes
- ReconciliationEngine: Push, pull, merge and conflict detection
- SyncWorker: Single-flight background sync queue
"""

from src.core.sync.client import GistClient, RemoteBlobClient
from src.core.sync.config import SyncConfig, SyncConfigStore
from src.core.sync.engine import ReconciliationEngine, detect_conflict, merge_collections
from src.core.sync.models import ConnectionTestResult, PullResult, SyncState, SyncStatus
from src.core.sync.worker import SyncWorker

__all__ = [
    "RemoteBlobClient",
    "GistClient",
    "SyncConfig",
    "SyncConfigStore",
    "ReconciliationEngine",
    "SyncWorker",
    "detect_conflict",
    "merge_collections",
    "SyncStatus",
    "SyncState",
    "PullResult",
    "ConnectionTestResult",
]
