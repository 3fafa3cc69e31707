"""Quota checks and grant/cancel submission.

Callers must hold ``ctx.store_lock``. The quota check reads the outstanding
amount without reserving it; the lock around the whole check, submit and
record sequence is what keeps the quota invariant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import AmountTooSmall, LedgerError, NotFound, QuotaExceeded, SubmissionFailed
from ..store import GrantRecord, GrantStatus
from ..utils.logging_config import StructuredLogger

if TYPE_CHECKING:
    from ..context import AppContext

logger = StructuredLogger(__name__)


class GrantService:
    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    @property
    def min_amount(self) -> int:
        grants = self.ctx.config.grants
        return grants.to_base_units(grants.min_amount)

    async def request_grant(self, requester_id: str, beneficiary: str, amount: int) -> GrantRecord:
        """Submit a grant of ``amount`` base units and record it as pending."""
        if amount < self.min_amount:
            raise AmountTooSmall(amount, self.min_amount)

        account = self.ctx.entry_store.get_or_create(requester_id)
        used = account.used_quota()
        if amount + used > account.max_quota:
            remaining = max(0, account.max_quota - used)
            logger.warning("Quota exceeded", requester=requester_id, requested=amount, remaining=remaining)
            raise QuotaExceeded(amount, remaining)

        try:
            external_id = await self.ctx.ledger.submit_grant(beneficiary, amount)
        except LedgerError as e:
            logger.error("Grant submission failed", requester=requester_id, beneficiary=beneficiary, error=str(e))
            raise SubmissionFailed(str(e)) from e

        entry = GrantRecord(
            sequence_number=account.new_sequence_number(),
            beneficiary=beneficiary,
            amount=amount,
            external_id=external_id,
            created_at=self.ctx.now(),
            status=GrantStatus.PENDING,
        )
        account.entries.append(entry)
        self.ctx.entry_store.save()

        logger.info(
            "Grant recorded",
            requester=requester_id,
            sequence_number=entry.sequence_number,
            amount=amount,
            external_id=external_id,
        )
        return entry

    async def cancel_grant(self, requester_id: str, sequence_number: int) -> GrantRecord:
        """Ask the ledger to cancel an entry. Local status changes only via reconciliation."""
        account = self.ctx.entry_store.get_or_create(requester_id)
        entry = account.find_entry(sequence_number)
        if entry is None:
            raise NotFound(sequence_number)

        try:
            await self.ctx.ledger.submit_cancel(entry.external_id)
        except LedgerError as e:
            logger.error("Cancel submission failed", requester=requester_id, sequence_number=sequence_number, error=str(e))
            raise SubmissionFailed(str(e)) from e

        logger.info("Cancel requested", requester=requester_id, sequence_number=sequence_number)
        return entry
