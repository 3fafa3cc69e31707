"""Application context shared by every daemon component."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable

from .ledger.client import LedgerClient
from .store import EntryStore
from .transport.base import Messenger
from .utils.config_loader import FaucetConfig


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class AppContext:
    """Built once at startup and passed by reference.

    ``store_lock`` is the single mutual-exclusion boundary over
    ``entry_store``: command handling and reconciliation both mutate and save
    only while holding it.
    """

    config: FaucetConfig
    entry_store: EntryStore
    ledger: LedgerClient
    messenger: Messenger
    store_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    now: Callable[[], datetime] = utc_now
