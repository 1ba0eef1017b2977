"""In-memory ordered command collection.

Holds the authoritative in-memory list of commands and applies the entity
mutations. Persistence and sync are handled by the caller; every mutation
here is pure with respect to I/O, which keeps replaying a sequence of
operations deterministic.
"""

from datetime import datetime

from src.core.commands.models import Command, CommandUpdate, new_command, utc_now
from src.core.errors import CommandNotFoundError


def _touch(cmd: Command, now: datetime | None) -> None:
    """Bump updated_at without letting it fall behind created_at."""
    stamp = now or utc_now()
    cmd.updated_at = max(stamp, cmd.created_at)


class CommandCollection:
    """Ordered sequence of commands, unique by id.

    Example:
        >>> collection = CommandCollection()
        >>> cmd = collection.add("List files", "ls -la")
        >>> collection.get(cmd.id) is cmd
        True
    """

    def __init__(self, commands: list[Command] | None = None) -> None:
        self._commands: list[Command] = []
        self.replace(commands or [])

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self):
        return iter(self._commands)

    def __contains__(self, command_id: object) -> bool:
        return any(cmd.id == command_id for cmd in self._commands)

    @property
    def commands(self) -> list[Command]:
        """Snapshot copy of the commands in order."""
        return list(self._commands)

    def _index_of(self, command_id: str) -> int:
        for index, cmd in enumerate(self._commands):
            if cmd.id == command_id:
                return index
        return -1

    def get(self, command_id: str) -> Command | None:
        """Return the command with the given id, or None."""
        index = self._index_of(command_id)
        return self._commands[index] if index != -1 else None

    def require(self, command_id: str) -> Command:
        """Return the command with the given id.

        Raises:
            CommandNotFoundError: If no such command exists.
        """
        cmd = self.get(command_id)
        if cmd is None:
            raise CommandNotFoundError(command_id)
        return cmd

    def replace(self, commands: list[Command]) -> None:
        """Replace the whole collection, dropping later duplicates of an id."""
        seen: set[str] = set()
        unique: list[Command] = []
        for cmd in commands:
            if cmd.id in seen:
                continue
            seen.add(cmd.id)
            unique.append(cmd)
        self._commands = unique

    def add(
        self,
        title: str,
        command: str,
        description: str = "",
        tags: list[str] | None = None,
        favorite: bool = False,
        now: datetime | None = None,
    ) -> Command:
        """Create a command and append it to the collection.

        Returns:
            The new command.

        Raises:
            ValueError: If the title is blank.
        """
        cmd = new_command(
            title=title,
            command=command,
            description=description,
            tags=tags,
            favorite=favorite,
            now=now,
        )
        self._commands.append(cmd)
        return cmd

    def update(
        self,
        command_id: str,
        changes: CommandUpdate | dict,
        now: datetime | None = None,
    ) -> Command | None:
        """Apply a partial update to a command.

        Args:
            command_id: Id of the command to update.
            changes: Fields to change; id and timestamps are not writable.
            now: Mutation time override.

        Returns:
            The updated command, or None if the id is unknown.

        Raises:
            pydantic.ValidationError: If ``changes`` contains invalid fields.
        """
        if not isinstance(changes, CommandUpdate):
            changes = CommandUpdate.model_validate(changes)

        cmd = self.get(command_id)
        if cmd is None:
            return None

        for name, value in changes.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(cmd, name, list(value) if name == "tags" else value)
        _touch(cmd, now)
        return cmd

    def delete(self, command_id: str) -> bool:
        """Remove a command. Returns False if the id is unknown."""
        index = self._index_of(command_id)
        if index == -1:
            return False
        del self._commands[index]
        return True

    def toggle_favorite(self, command_id: str, now: datetime | None = None) -> Command | None:
        """Flip the favorite flag. Returns None if the id is unknown."""
        cmd = self.get(command_id)
        if cmd is None:
            return None
        cmd.favorite = not cmd.favorite
        _touch(cmd, now)
        return cmd

    def latest_update(self) -> datetime | None:
        """Return the maximum updated_at across all commands, if any."""
        if not self._commands:
            return None
        return max(cmd.updated_at for cmd in self._commands)
