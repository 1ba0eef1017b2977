"""Search, tag filtering and favorites-first sorting over commands.

Pure functions; nothing here touches storage.
"""

from typing import Literal

from src.core.commands.models import Command

SortKey = Literal["updated_at", "created_at", "title"]
SortOrder = Literal["asc", "desc"]


def search_commands(commands: list[Command], query: str) -> list[Command]:
    """Case-insensitive substring match over title, command and description."""
    if not query:
        return list(commands)
    needle = query.lower()
    return [
        cmd
        for cmd in commands
        if needle in cmd.title.lower()
        or needle in cmd.command.lower()
        or needle in cmd.description.lower()
    ]


def filter_by_tag(commands: list[Command], tag: str) -> list[Command]:
    """Keep commands carrying the given tag (no-op for an empty tag)."""
    if not tag:
        return list(commands)
    return [cmd for cmd in commands if tag in cmd.tags]


def sort_commands(
    commands: list[Command],
    key: SortKey = "updated_at",
    order: SortOrder = "desc",
    favorites_first: bool = True,
) -> list[Command]:
    """Sort commands by a key, optionally keeping favorites on top.

    Favorite status takes priority over the sort key when
    ``favorites_first`` is set, regardless of ``order``.

    Args:
        commands: Commands to sort.
        key: Field to sort by.
        order: ``asc`` or ``desc``.
        favorites_first: Group favorites before everything else.

    Returns:
        A new sorted list.
    """
    if key == "title":
        result = sorted(commands, key=lambda cmd: cmd.title.lower(), reverse=order == "desc")
    else:
        result = sorted(commands, key=lambda cmd: getattr(cmd, key), reverse=order == "desc")

    if favorites_first:
        # Stable sort keeps the key ordering within each group
        result.sort(key=lambda cmd: not cmd.favorite)
    return result


def query_commands(
    commands: list[Command],
    search: str = "",
    tag: str = "",
    key: SortKey = "updated_at",
    order: SortOrder = "desc",
    favorites_first: bool = True,
) -> list[Command]:
    """Apply search, tag filter and sort in one call."""
    result = search_commands(commands, search)
    result = filter_by_tag(result, tag)
    return sort_commands(result, key=key, order=order, favorites_first=favorites_first)


def all_tags(commands: list[Command]) -> list[str]:
    """Return every distinct tag in first-seen order."""
    seen: dict[str, None] = {}
    for cmd in commands:
        for tag in cmd.tags:
            seen.setdefault(tag, None)
    return list(seen)
