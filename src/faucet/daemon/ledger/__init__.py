"""Ledger gateway client and reconciliation of grant entries."""

from .client import HttpLedgerClient, LedgerClient, LedgerPage, fetch_all_known_ids
from .reconcile import (
    ReconcileSummary,
    ReconciliationEngine,
    Transition,
    apply_known_set,
    next_status,
)

__all__ = [
    "HttpLedgerClient",
    "LedgerClient",
    "LedgerPage",
    "fetch_all_known_ids",
    "ReconcileSummary",
    "ReconciliationEngine",
    "Transition",
    "apply_known_set",
    "next_status",
]
