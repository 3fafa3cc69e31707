"""Chat command handling: parse, apply to the store, reply."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import AmountTooSmall, NotFound, QuotaExceeded, SubmissionFailed
from ..store import GrantStatus, LoggedMessage, RequesterAccount, TERMINAL_STATES
from ..transport.base import InboundMessage
from ..utils.formatting import format_duration
from ..utils.logging_config import StructuredLogger
from .commands import BadUsage, Cancel, Command, FUSE_USAGE, Fuse, ListEntries, Start, parse_command
from .grants import GrantService

if TYPE_CHECKING:
    from ..context import AppContext

logger = StructuredLogger(__name__)

EXPIRED_REPLY = "failed to handle message: message expired"


class CommandHandler:
    """Handles one inbound message. Must run while ``ctx.store_lock`` is held."""

    def __init__(self, ctx: AppContext, grants: GrantService | None = None):
        self.ctx = ctx
        self.grants = grants or GrantService(ctx)

    @property
    def _fmt(self):
        return self.ctx.config.grants.format_amount

    async def __call__(self, msg: InboundMessage) -> None:
        if msg.text is None:
            await self.ctx.messenger.send_message(msg.chat_id, EXPIRED_REPLY)
            return

        account = self.ctx.entry_store.get_or_create(msg.sender_id)
        account.message_log.append(
            LoggedMessage(message_id=msg.message_id, timestamp=msg.timestamp, text=msg.text)
        )
        try:
            grants_cfg = self.ctx.config.grants
            command = parse_command(msg.text, grants_cfg.beneficiary_pattern, grants_cfg.default_amount)
            reply = await self.dispatch(account, command)
        finally:
            self.ctx.entry_store.save()

        await self.ctx.messenger.send_message(msg.chat_id, reply)

    async def dispatch(self, account: RequesterAccount, command: Command) -> str:
        if isinstance(command, Start):
            return command.header + self.welcome_text()
        if isinstance(command, ListEntries):
            return self.render_list(account)
        if isinstance(command, Fuse):
            return await self._fuse(account, command)
        if isinstance(command, Cancel):
            return await self._cancel(account, command)
        if isinstance(command, BadUsage):
            return command.reason
        raise TypeError(f"Unhandled command {command!r}")

    async def _fuse(self, account: RequesterAccount, command: Fuse) -> str:
        grants_cfg = self.ctx.config.grants
        symbol = grants_cfg.symbol
        amount = grants_cfg.to_base_units(command.amount)
        try:
            entry = await self.grants.request_grant(account.id, command.beneficiary, amount)
        except AmountTooSmall as e:
            return f"Amount too small. Needs to be at least {self._fmt(e.minimum)} {symbol}. {FUSE_USAGE}"
        except QuotaExceeded as e:
            return (
                f"Not enough {symbol} available. Required {self._fmt(e.requested)} "
                f"but only {self._fmt(e.remaining)} {symbol} available"
            )
        except SubmissionFailed:
            return f"Something bad happened. Maybe '{command.beneficiary}' is not a valid address?"

        return (
            f"Fuse transaction sent! Entry {entry.sequence_number}: "
            f"{self._fmt(entry.amount)} {symbol} to {entry.beneficiary}"
        )

    async def _cancel(self, account: RequesterAccount, command: Cancel) -> str:
        try:
            await self.grants.cancel_grant(account.id, command.sequence_number)
        except NotFound:
            return f"Can't find fuse entry with id {command.sequence_number}"
        except SubmissionFailed:
            return "Could not submit the cancel request. Please try again later."
        return "Fuse entry cancel requested"

    def welcome_text(self) -> str:
        grants_cfg = self.ctx.config.grants
        symbol = grants_cfg.symbol
        quota = self._fmt(self.ctx.entry_store.store.default_max_quota)
        return (
            f"Welcome to the {self.ctx.config.bot_name}!\n"
            "\n"
            "Usage:\n"
            "Send a message with the desired address and "
            f"{grants_cfg.default_amount} {symbol} will be fused to it.\n"
            f"Each account has a limit of {quota} {symbol}.\n"
            "\n"
            "Advanced usage:\n"
            "/list - show all fuse entries\n"
            f"/fuse {{address}} {{amount}} - fuse {{amount}} {symbol} to {{address}}\n"
            "/{number} - cancel the fuse entry with that number\n"
            f"{{address}} - fuse {grants_cfg.default_amount} {symbol} to {{address}}\n"
        )

    def render_list(self, account: RequesterAccount) -> str:
        grants_cfg = self.ctx.config.grants
        symbol = grants_cfg.symbol
        lock_seconds = grants_cfg.lock_duration_seconds
        now = self.ctx.now()

        lines = [f"Used {self._fmt(account.used_quota())}/{self._fmt(account.max_quota)} {symbol}"]
        for entry in account.entries:
            label = f"{self._fmt(entry.amount)} {symbol} to {entry.beneficiary}"
            if entry.status == GrantStatus.ACTIVE:
                lifetime = (now - entry.created_at).total_seconds()
                if lifetime > lock_seconds:
                    lines.append(f"✅ /{entry.sequence_number} {label}")
                else:
                    lines.append(f"✅ {entry.sequence_number} {label} [{format_duration(lock_seconds - lifetime)}]")
            elif entry.status == GrantStatus.PENDING:
                lines.append(f"⏳ {entry.sequence_number} {label} [pending]")

        for entry in account.entries:
            if entry.status in TERMINAL_STATES:
                label = f"{self._fmt(entry.amount)} {symbol} to {entry.beneficiary}"
                lines.append(f"❌ {entry.sequence_number} {label} [{entry.status.value}]")

        return "\n".join(lines) + "\n"
