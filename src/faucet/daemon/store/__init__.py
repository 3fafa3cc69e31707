"""Entry store: requester accounts, grant records and their JSON document."""

from .models import (
    GrantRecord,
    GrantStatus,
    LoggedMessage,
    OUTSTANDING_STATES,
    RequesterAccount,
    Store,
    TERMINAL_STATES,
)
from .persistence import EntryStore

__all__ = [
    "EntryStore",
    "GrantRecord",
    "GrantStatus",
    "LoggedMessage",
    "OUTSTANDING_STATES",
    "RequesterAccount",
    "Store",
    "TERMINAL_STATES",
]
