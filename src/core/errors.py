"""Error taxonomy shared by storage, remote client and sync engine.

Local errors (StorageError, ParseFailure) are raised by the persistence
layer. Remote errors derive from SyncError and carry a ``retryable`` flag
so the engine and callers can decide whether to try again.
"""


class SniptError(Exception):
    """Base exception for the application."""


class StorageError(SniptError):
    """Local read or write failed (IOFailure)."""


class ParseFailure(SniptError):
    """Stored or remote content is not a valid command document."""


class CommandNotFoundError(SniptError, KeyError):
    """No command with the requested id exists."""

    def __init__(self, command_id: str) -> None:
        super().__init__(command_id)
        self.command_id = command_id

    def __str__(self) -> str:
        return f"No command found with id: {self.command_id}"


class SyncError(SniptError):
    """Base exception for sync operations.

    The engine retries idempotent remote calls that fail with an error
    whose ``retryable`` is True.
    """

    retryable: bool = False


class ConfigurationError(SyncError):
    """Sync is disabled or the credential / document id is missing."""


class AuthFailure(SyncError):
    """The remote store rejected the credential."""


class NetworkFailure(SyncError):
    """Transport-level failure or timeout. Safe to retry."""

    retryable = True


class NotFoundError(SyncError):
    """The remote document (or its file) no longer exists."""


class RemoteRejected(SyncError):
    """The remote store refused the request for a non-auth reason."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SyncInProgressError(SyncError):
    """Another push or pull is already running."""
