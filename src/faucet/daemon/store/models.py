"""Store aggregate: requester accounts and their grant records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import StrEnum
from typing import Any

from ..errors import CorruptState


class GrantStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELED = "canceled"
    INVALID = "invalid"


OUTSTANDING_STATES = {GrantStatus.PENDING, GrantStatus.ACTIVE}
TERMINAL_STATES = {GrantStatus.CANCELED, GrantStatus.INVALID}


def _parse_ts(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be an ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _require_int(value: Any, name: str, minimum: int = 0) -> int:
    # bool is an int subclass; a JSON true is still a schema violation
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


@dataclass
class GrantRecord:
    sequence_number: int
    beneficiary: str
    amount: int
    external_id: str
    created_at: datetime
    status: GrantStatus = GrantStatus.PENDING

    @property
    def outstanding(self) -> bool:
        return self.status in OUTSTANDING_STATES

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequenceNumber": self.sequence_number,
            "beneficiary": self.beneficiary,
            "amount": self.amount,
            "externalId": self.external_id,
            "createdAt": self.created_at.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "GrantRecord":
        return cls(
            sequence_number=_require_int(payload["sequenceNumber"], "sequenceNumber", 1),
            beneficiary=_require_str(payload["beneficiary"], "beneficiary"),
            amount=_require_int(payload["amount"], "amount"),
            external_id=_require_str(payload["externalId"], "externalId"),
            created_at=_parse_ts(payload["createdAt"]),
            status=GrantStatus(payload["status"]),
        )


@dataclass
class LoggedMessage:
    message_id: int
    timestamp: datetime
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageId": self.message_id,
            "timestamp": self.timestamp.isoformat(),
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "LoggedMessage":
        return cls(
            message_id=_require_int(payload["messageId"], "messageId"),
            timestamp=_parse_ts(payload["timestamp"]),
            text=_require_str(payload["text"], "text"),
        )


@dataclass
class RequesterAccount:
    id: str
    max_quota: int
    next_sequence_number: int = 1
    entries: list[GrantRecord] = field(default_factory=list)
    message_log: list[LoggedMessage] = field(default_factory=list)

    def new_sequence_number(self) -> int:
        value = self.next_sequence_number
        self.next_sequence_number += 1
        return value

    def used_quota(self) -> int:
        return sum(entry.amount for entry in self.entries if entry.outstanding)

    def remaining_quota(self) -> int:
        return max(0, self.max_quota - self.used_quota())

    def find_entry(self, sequence_number: int) -> GrantRecord | None:
        """Most recent entry carrying ``sequence_number``."""
        for entry in reversed(self.entries):
            if entry.sequence_number == sequence_number:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nextSequenceNumber": self.next_sequence_number,
            "maxQuota": self.max_quota,
            "entries": [entry.to_dict() for entry in self.entries],
            "messageLog": [msg.to_dict() for msg in self.message_log],
        }

    @classmethod
    def from_dict(cls, requester_id: str, payload: dict[str, Any]) -> "RequesterAccount":
        account = cls(
            id=requester_id,
            max_quota=_require_int(payload["maxQuota"], "maxQuota"),
            next_sequence_number=_require_int(payload["nextSequenceNumber"], "nextSequenceNumber", 1),
            entries=[GrantRecord.from_dict(item) for item in payload["entries"]],
            message_log=[LoggedMessage.from_dict(item) for item in payload["messageLog"]],
        )
        previous = 0
        for entry in account.entries:
            if entry.sequence_number <= previous:
                raise ValueError(f"sequence numbers not increasing at {entry.sequence_number}")
            previous = entry.sequence_number
        if previous >= account.next_sequence_number:
            raise ValueError("nextSequenceNumber does not exceed assigned sequence numbers")
        return account


@dataclass
class Store:
    default_max_quota: int
    users: dict[str, RequesterAccount] = field(default_factory=dict)

    def get(self, requester_id: str) -> RequesterAccount | None:
        return self.users.get(requester_id)

    def get_or_create(self, requester_id: str) -> RequesterAccount:
        account = self.users.get(requester_id)
        if account is None:
            account = RequesterAccount(id=requester_id, max_quota=self.default_max_quota)
            self.users[requester_id] = account
        return account

    def iter_entries(self):
        for account in self.users.values():
            for entry in account.entries:
                yield account, entry

    def stats(self) -> dict[str, int]:
        summary = {status.value: 0 for status in GrantStatus}
        outstanding = 0
        for _, entry in self.iter_entries():
            summary[entry.status.value] += 1
            if entry.outstanding:
                outstanding += entry.amount
        summary["accounts"] = len(self.users)
        summary["outstanding_amount"] = outstanding
        return summary

    def to_dict(self) -> dict[str, Any]:
        return {"users": {uid: account.to_dict() for uid, account in self.users.items()}}

    def replace_from_dict(self, payload: Any) -> None:
        """Populate from a persisted document, raising CorruptState on schema violations."""
        try:
            if not isinstance(payload, dict):
                raise ValueError("document must be an object")
            raw_users = payload.get("users")
            if raw_users is None:
                raw_users = {}
            if not isinstance(raw_users, dict):
                raise ValueError("users must be an object")
            users = {
                str(uid): RequesterAccount.from_dict(str(uid), raw)
                for uid, raw in raw_users.items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CorruptState(f"Persisted store does not match schema: {exc}") from exc
        self.users = users
