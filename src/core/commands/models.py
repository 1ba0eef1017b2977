# src/core/commands/models.py
"""Command data model and its JSON document codec.

This module defines the Command dataclass which represents a reusable text
snippet with metadata, plus the helpers that turn a whole collection into
the pretty-printed JSON array shared by local storage and the remote
document.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from src.core.errors import ParseFailure


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC.

    Args:
        value: Textual timestamp (``2024-01-15T14:00:00.000Z`` style accepted).

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the value is not a parseable timestamp string.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 text in UTC with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc)
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Command:
    """Represents a catalogued command snippet.

    Attributes:
        id: Opaque unique identifier (UUID4 string), never reused.
        title: Non-empty display title.
        command: The text body being catalogued.
        description: Free-text description, may be empty.
        tags: Short labels; order is kept for display.
        favorite: Whether the command is pinned as a favorite.
        created_at: Creation timestamp, immutable.
        updated_at: Timestamp of the last mutation (>= created_at).

    Example:
        >>> cmd = new_command(title="List files", command="ls -la")
        >>> cmd.favorite
        False
    """

    id: str
    title: str
    command: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    favorite: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase dictionary used in JSON documents.

        Returns:
            Dictionary representation of the command.
        """
        return {
            "id": self.id,
            "title": self.title,
            "command": self.command,
            "description": self.description,
            "tags": list(self.tags),
            "favorite": self.favorite,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Command":
        """Create from a stored dictionary.

        Missing ``favorite``, ``description`` and ``tags`` fall back to
        their defaults; missing id or timestamps are rejected.

        Args:
            data: Dictionary with command data.

        Returns:
            Command instance.

        Raises:
            ParseFailure: If the record is malformed.
        """
        if not isinstance(data, dict):
            raise ParseFailure(f"Command record must be an object, got {type(data).__name__}")
        command_id = data.get("id")
        if not isinstance(command_id, str) or not command_id:
            raise ParseFailure("Command record is missing an id")
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ParseFailure(f"Command {command_id} has invalid tags")
        try:
            created_at = parse_timestamp(data.get("createdAt"))
            updated_at = parse_timestamp(data.get("updatedAt"))
        except ValueError as e:
            raise ParseFailure(f"Command {command_id}: {e}") from e

        return cls(
            id=command_id,
            title=str(data.get("title") or ""),
            command=str(data.get("command") or ""),
            description=str(data.get("description") or ""),
            tags=[str(tag) for tag in tags],
            favorite=bool(data.get("favorite", False)),
            created_at=created_at,
            updated_at=updated_at,
        )


class CommandUpdate(BaseModel):
    """Validated partial update for a command.

    Only user-editable fields are accepted; ``id`` and the timestamps are
    rejected as unknown fields.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    command: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    favorite: bool | None = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("title must not be empty")
        return value


def new_command(
    title: str,
    command: str,
    description: str = "",
    tags: list[str] | None = None,
    favorite: bool = False,
    now: datetime | None = None,
) -> Command:
    """Create a new Command with a fresh id and matching timestamps.

    Args:
        title: Display title (must not be blank).
        command: Text body.
        description: Optional description.
        tags: Optional tag list.
        favorite: Initial favorite flag.
        now: Creation time override (defaults to the current UTC time).

    Returns:
        The new Command.

    Raises:
        ValueError: If the title is blank.
    """
    if not title or not title.strip():
        raise ValueError("title must not be empty")
    created = now or utc_now()
    return Command(
        id=str(uuid.uuid4()),
        title=title,
        command=command,
        description=description,
        tags=list(tags or []),
        favorite=favorite,
        created_at=created,
        updated_at=created,
    )


def dump_commands(commands: list[Command]) -> str:
    """Serialize a collection to the pretty-printed JSON array format."""
    return json.dumps([cmd.to_dict() for cmd in commands], indent=2, ensure_ascii=False)


def load_commands(text: str) -> list[Command]:
    """Deserialize a JSON array document into commands.

    Either the whole document parses or nothing is returned.

    Args:
        text: JSON text.

    Returns:
        List of commands in document order.

    Raises:
        ParseFailure: If the text is not valid JSON or not a command array.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Invalid command document: {e}") from e
    if not isinstance(data, list):
        raise ParseFailure("Command document must be a JSON array")
    return [Command.from_dict(item) for item in data]
