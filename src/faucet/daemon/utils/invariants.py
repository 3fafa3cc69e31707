"""
Store invariant checks.

All checks are read-only walks over the in-memory store.
No mutations. No side effects.
"""

from dataclasses import dataclass
from typing import Optional

from ..store import Store


@dataclass
class InvariantResult:
    name: str
    passed: bool
    detail: Optional[str] = None


def check_quota_within_limit(store: Store) -> InvariantResult:
    """usedQuota <= maxQuota for every requester."""
    violations = [
        f"{account.id}: used={account.used_quota()} > max={account.max_quota}"
        for account in store.users.values()
        if account.used_quota() > account.max_quota
    ]
    if violations:
        return InvariantResult(
            name="quota_within_limit",
            passed=False,
            detail=f"Violations: {'; '.join(violations)}",
        )
    return InvariantResult(name="quota_within_limit", passed=True)


def check_sequence_numbers(store: Store) -> InvariantResult:
    """Sequence numbers strictly increase and stay below nextSequenceNumber."""
    violations = []
    for account in store.users.values():
        previous = 0
        for entry in account.entries:
            if entry.sequence_number <= previous:
                violations.append(f"{account.id}: #{entry.sequence_number} after #{previous}")
            previous = max(previous, entry.sequence_number)
        if previous >= account.next_sequence_number:
            violations.append(f"{account.id}: next={account.next_sequence_number} <= #{previous}")

    if violations:
        return InvariantResult(
            name="sequence_numbers",
            passed=False,
            detail=f"Violations: {'; '.join(violations)}",
        )
    return InvariantResult(name="sequence_numbers", passed=True)


def check_outstanding_have_external_id(store: Store) -> InvariantResult:
    """Every pending/active entry was recorded after a successful submission."""
    missing = [
        f"{account.id}: #{entry.sequence_number}"
        for account, entry in store.iter_entries()
        if entry.outstanding and not entry.external_id
    ]
    if missing:
        return InvariantResult(
            name="outstanding_have_external_id",
            passed=False,
            detail=f"Entries without ledger id: {'; '.join(missing)}",
        )
    return InvariantResult(name="outstanding_have_external_id", passed=True)


def run_all_checks(store: Store) -> list[InvariantResult]:
    """Run all invariant checks and return results."""
    return [
        check_quota_within_limit(store),
        check_sequence_numbers(store),
        check_outstanding_have_external_id(store),
    ]
