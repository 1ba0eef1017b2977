"""Command module for the catalogued command collection.

This module provides:
- Command: Data model for a catalogued command snippet
- CommandUpdate: Validated partial update
- CommandCollection: Ordered in-memory collection with CRUD mutations
- query_commands / all_tags: Search, tag filter and favorites-first sort

CommandService (the collaborator facade) lives in
src.core.commands.service and is not re-exported here, since it depends
on the sync package which itself imports the command model.
"""

from src.core.commands.collection import CommandCollection
from src.core.commands.models import (
    Command,
    CommandUpdate,
    dump_commands,
    load_commands,
    new_command,
)
from src.core.commands.query import all_tags, query_commands, sort_commands

__all__ = [
    "Command",
    "CommandUpdate",
    "CommandCollection",
    "new_command",
    "dump_commands",
    "load_commands",
    "query_commands",
    "sort_commands",
    "all_tags",
]
