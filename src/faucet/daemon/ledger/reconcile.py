"""Reconciliation of local grant entries against the ledger's known set.

    pending  -> active    id present in the known set
    pending  -> invalid   id absent and older than the pending timeout
    active   -> canceled  id absent
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, TYPE_CHECKING

from ..errors import LedgerError
from ..store import GrantStatus, Store
from ..utils.logging_config import StructuredLogger
from .client import fetch_all_known_ids

if TYPE_CHECKING:
    from ..context import AppContext

logger = StructuredLogger(__name__)

_NOTICES = {
    GrantStatus.ACTIVE: "has been activated",
    GrantStatus.INVALID: "has been invalidated",
    GrantStatus.CANCELED: "has been canceled",
}


@dataclass
class Transition:
    requester_id: str
    sequence_number: int
    external_id: str
    from_status: GrantStatus
    to_status: GrantStatus

    def notice(self) -> str:
        return f"Update: fuse entry {self.sequence_number} {_NOTICES[self.to_status]}"


@dataclass
class ReconcileSummary:
    known: int
    transitions: list[Transition] = field(default_factory=list)
    unaccounted_ids: set[str] = field(default_factory=set)


def next_status(status: GrantStatus, present: bool, age: timedelta, timeout: timedelta) -> GrantStatus:
    if status == GrantStatus.PENDING:
        if present:
            return GrantStatus.ACTIVE
        if age > timeout:
            return GrantStatus.INVALID
    elif status == GrantStatus.ACTIVE and not present:
        return GrantStatus.CANCELED
    return status


def apply_known_set(
    store: Store,
    known: set[str],
    now: datetime,
    timeout: timedelta,
) -> tuple[list[Transition], set[str]]:
    """Advance every entry once; return transitions and known ids matched by no outstanding entry."""
    transitions: list[Transition] = []
    accounted: set[str] = set()

    for account, entry in store.iter_entries():
        present = entry.external_id in known
        new_status = next_status(entry.status, present, now - entry.created_at, timeout)
        if new_status != entry.status:
            transitions.append(
                Transition(
                    requester_id=account.id,
                    sequence_number=entry.sequence_number,
                    external_id=entry.external_id,
                    from_status=entry.status,
                    to_status=new_status,
                )
            )
            entry.status = new_status
        if entry.outstanding:
            accounted.add(entry.external_id)

    return transitions, known - accounted


def log_unaccounted_ids(ids: set[str]) -> None:
    """Default hook: ledger entries the store knows nothing about are only reported."""
    logger.warning("Known ledger entries not tracked by any requester", count=len(ids))


class ReconciliationEngine:
    def __init__(
        self,
        ctx: AppContext,
        on_unaccounted_ids: Callable[[set[str]], None] = log_unaccounted_ids,
    ):
        self.ctx = ctx
        self.on_unaccounted_ids = on_unaccounted_ids
        self._task: asyncio.Task | None = None

    @property
    def timeout(self) -> timedelta:
        return timedelta(seconds=self.ctx.config.grants.pending_timeout_seconds)

    async def run_pass(self) -> ReconcileSummary | None:
        """One reconciliation pass. Returns None when the known set could not be fetched."""
        ledger_cfg = self.ctx.config.ledger
        try:
            known = await fetch_all_known_ids(self.ctx.ledger, ledger_cfg.owner_address, ledger_cfg.page_size)
        except LedgerError as e:
            logger.warning("Reconciliation pass skipped, known set unavailable", error=str(e))
            return None

        save_error: OSError | None = None
        async with self.ctx.store_lock:
            transitions, unaccounted = apply_known_set(
                self.ctx.entry_store.store, known, self.ctx.now(), self.timeout
            )
            if transitions:
                try:
                    self.ctx.entry_store.save()
                except OSError as e:
                    # statuses already changed in memory; a later pass will not see them again
                    logger.error("Store save failed after reconciliation", error=str(e))
                    save_error = e

        for transition in transitions:
            logger.info(
                "Grant status changed",
                requester=transition.requester_id,
                sequence_number=transition.sequence_number,
                from_status=transition.from_status.value,
                to_status=transition.to_status.value,
            )
            await self.ctx.messenger.send_message(transition.requester_id, transition.notice())

        if unaccounted:
            self.on_unaccounted_ids(unaccounted)

        if save_error is not None:
            raise save_error
        return ReconcileSummary(known=len(known), transitions=transitions, unaccounted_ids=unaccounted)

    async def run_forever(self) -> None:
        interval = self.ctx.config.scheduler.reconcile_interval_seconds
        logger.info("Reconciliation loop started", interval_seconds=interval)
        while True:
            try:
                await self.run_pass()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Reconciliation loop error", error=str(e))
            await asyncio.sleep(interval)

    def start(self) -> None:
        self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
