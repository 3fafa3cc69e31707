"""Command surface: parsing, grant engine, handlers and the serialized processor."""

from .commands import BadUsage, Cancel, Command, Fuse, ListEntries, Start, parse_command
from .grants import GrantService
from .handlers import CommandHandler
from .processor import CommandProcessor

__all__ = [
    "BadUsage",
    "Cancel",
    "Command",
    "Fuse",
    "ListEntries",
    "Start",
    "parse_command",
    "GrantService",
    "CommandHandler",
    "CommandProcessor",
]
