# src/interfaces/api/schemas.py
"""Pydantic models for FastAPI request/response validation.

Defines request and response schemas for the command and sync endpoints.
Partial command updates reuse CommandUpdate from the command model.
"""

from pydantic import BaseModel, Field

from src.core.commands.models import Command, format_timestamp
from src.core.sync.config import SyncConfig
from src.core.sync.models import SyncState


class CommandCreate(BaseModel):
    """Request body for POST /commands endpoint.

    Attributes:
        title: Display title (must not be blank).
        command: The text body being catalogued.
        description: Optional free-text description.
        tags: Optional tag labels.
        favorite: Initial favorite flag.
    """

    title: str = Field(..., min_length=1, description="Command title")
    command: str = Field(..., description="Command text body")
    description: str = Field("", description="Free-text description")
    tags: list[str] = Field(default_factory=list, description="Tag labels")
    favorite: bool = Field(False, description="Pin as favorite")


class CommandResponse(BaseModel):
    """Response body for command endpoints."""

    id: str
    title: str
    command: str
    description: str
    tags: list[str]
    favorite: bool
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")

    @classmethod
    def from_command(cls, cmd: Command) -> "CommandResponse":
        return cls(
            id=cmd.id,
            title=cmd.title,
            command=cmd.command,
            description=cmd.description,
            tags=list(cmd.tags),
            favorite=cmd.favorite,
            created_at=format_timestamp(cmd.created_at),
            updated_at=format_timestamp(cmd.updated_at),
        )


class SyncConfigUpdate(BaseModel):
    """Request body for PUT /sync/config. Omitted fields are unchanged."""

    token: str | None = Field(None, description="Remote access token")
    gist_id: str | None = Field(None, description="Existing remote document id")
    enabled: bool | None = Field(None, description="Enable sync")
    auto_sync: bool | None = Field(None, description="Push after every change")


class SyncStatusResponse(BaseModel):
    """Response body for GET /sync/status.

    The token itself is never returned.
    """

    status: str
    error: str | None = None
    enabled: bool
    auto_sync: bool
    has_token: bool
    gist_id: str | None = None
    last_sync_at: str | None = None
    username: str | None = None

    @classmethod
    def build(
        cls, state: SyncState, config: SyncConfig, username: str | None
    ) -> "SyncStatusResponse":
        return cls(
            status=state.status.value,
            error=state.error,
            enabled=config.enabled,
            auto_sync=config.auto_sync,
            has_token=bool(config.token),
            gist_id=config.gist_id,
            last_sync_at=format_timestamp(config.last_sync_at) if config.last_sync_at else None,
            username=username,
        )


class PushResponse(BaseModel):
    gist_id: str


class PullResponse(BaseModel):
    """Response body for POST /sync/pull."""

    merged: bool
    conflict: bool
    count: int = 0


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str
