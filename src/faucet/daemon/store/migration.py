"""Conversion of first-generation documents into the current store schema.

The first-generation bot fused once per requester and kept only the request
message: ``{"recipients": {"<id>": {"msg": {...telegram message...}}}}``.
Ledger-side entries are supplied separately (exported fuse entry list) and
matched to requesters by beneficiary address.
"""

from __future__ import annotations

from datetime import datetime, UTC
import re
from typing import Any, Iterable

from ..utils.logging_config import StructuredLogger
from .models import GrantRecord, GrantStatus, LoggedMessage, RequesterAccount, Store

logger = StructuredLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, UTC)


def _iter_entries(entries_doc: Any) -> Iterable[dict]:
    if isinstance(entries_doc, dict):
        return entries_doc.values()
    if isinstance(entries_doc, list):
        return entries_doc
    raise ValueError("entries document must be an object or a list")


def migrate_v1(
    old_doc: dict[str, Any],
    entries_doc: Any,
    default_max_quota: int,
    beneficiary_pattern: str,
) -> tuple[Store, list[str]]:
    """Build a Store from a v1 document. Returns the store and skipped requester ids."""
    beneficiary_re = re.compile(beneficiary_pattern)
    by_beneficiary: dict[str, list[dict]] = {}
    for entry in _iter_entries(entries_doc):
        by_beneficiary.setdefault(str(entry["beneficiary"]), []).append(entry)

    store = Store(default_max_quota=default_max_quota)
    skipped: list[str] = []

    for requester_id, record in (old_doc.get("recipients") or {}).items():
        msg = record.get("msg") or {}
        address = str(msg.get("text") or "").strip()
        candidates = by_beneficiary.get(address) or []
        if not beneficiary_re.match(address) or not candidates:
            skipped.append(str(requester_id))
            continue

        ledger_entry = candidates.pop()
        account = RequesterAccount(
            id=str(requester_id),
            max_quota=default_max_quota,
            next_sequence_number=2,
            entries=[
                GrantRecord(
                    sequence_number=1,
                    beneficiary=address,
                    amount=int(ledger_entry["amount"]),
                    external_id=str(ledger_entry["id"]),
                    created_at=_EPOCH,
                    status=GrantStatus.ACTIVE,
                )
            ],
            message_log=[
                LoggedMessage(
                    message_id=int(msg.get("message_id", 0)),
                    timestamp=datetime.fromtimestamp(int(msg.get("date", 0)), UTC),
                    text=address,
                )
            ],
        )
        store.users[account.id] = account

    if skipped:
        logger.warning("Requesters skipped during v1 migration", count=len(skipped))
    return store, skipped
