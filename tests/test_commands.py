"""Command parsing and chat replies."""

import asyncio
from datetime import timedelta

import pytest

from faucet.daemon.control import (
    BadUsage,
    Cancel,
    CommandHandler,
    CommandProcessor,
    Fuse,
    ListEntries,
    Start,
    parse_command,
)
from faucet.daemon.control.handlers import EXPIRED_REPLY
from faucet.daemon.store import GrantRecord, GrantStatus
from faucet.daemon.utils.config_loader import DEFAULT_BENEFICIARY_PATTERN
from faucet.daemon.utils.formatting import format_duration

from conftest import ADDR_A, ADDR_B, T0, inbound, make_config, make_ctx


def parse(text):
    return parse_command(text, DEFAULT_BENEFICIARY_PATTERN, default_amount=10)


class TestParser:
    def test_start_and_list(self):
        assert parse("/start") == Start()
        assert parse("/list") == ListEntries()

    def test_fuse_with_amount(self):
        assert parse(f"/fuse {ADDR_A} 25") == Fuse(beneficiary=ADDR_A, amount=25)

    @pytest.mark.parametrize(
        "text,reason",
        [
            (f"/fuse {ADDR_A}", "Incorrect number of parameters"),
            (f"/fuse {ADDR_A} 10 extra", "Incorrect number of parameters"),
            ("/fuse z1short 10", "Invalid address"),
            (f"/fuse {ADDR_A} ten", "whole number"),
            (f"/fuse {ADDR_A} -5", "whole number"),
            (f"/fuse {ADDR_A} ²", "whole number"),
            (f"/fuse {ADDR_A} ١٠", "whole number"),
        ],
    )
    def test_fuse_bad_usage(self, text, reason):
        command = parse(text)
        assert isinstance(command, BadUsage)
        assert reason in command.reason

    def test_cancel_by_number(self):
        assert parse("/3") == Cancel(sequence_number=3)
        assert parse("/12 please") == Cancel(sequence_number=12)

    def test_zero_is_not_a_cancel(self):
        assert parse("/0") == Start(header="Unknown command '/0'\n\n")

    def test_superscript_digits_are_not_a_cancel(self):
        assert parse("/³") == Start(header="Unknown command '/³'\n\n")

    def test_bare_address_is_implicit_fuse(self):
        assert parse(ADDR_B) == Fuse(beneficiary=ADDR_B, amount=10, implicit=True)

    def test_unknown(self):
        assert parse("hello there") == Start(header="Unknown command 'hello'\n\n")


def _run(ctx, *texts, sender="42"):
    handler = CommandHandler(ctx)

    async def scenario():
        for i, text in enumerate(texts, start=1):
            await handler(inbound(text, sender=sender, message_id=i))

    asyncio.run(scenario())
    return ctx.messenger.texts_for(sender)


class TestHandler:
    def test_message_log_records_every_text(self, ctx):
        _run(ctx, "/start", "/list")
        log = ctx.entry_store.get("42").message_log
        assert [m.text for m in log] == ["/start", "/list"]
        assert [m.message_id for m in log] == [1, 2]
        assert ctx.entry_store.path.exists()

    def test_message_without_text(self, ctx):
        asyncio.run(CommandHandler(ctx)(inbound(None)))
        assert ctx.messenger.texts_for("42") == [EXPIRED_REPLY]
        assert ctx.entry_store.get("42") is None

    def test_unknown_command_prefixes_welcome(self, ctx):
        replies = _run(ctx, "what")
        assert replies[0].startswith("Unknown command 'what'\n\nWelcome to the free plasma bot!")

    def test_implicit_fuse_uses_default_amount(self, ctx):
        replies = _run(ctx, ADDR_A)
        assert ctx.ledger.grants == [(ADDR_A, 10)]
        assert replies == [f"Fuse transaction sent! Entry 1: 10.0 QSR to {ADDR_A}"]

    def test_amounts_are_converted_to_base_units(self, tmp_path):
        ctx = make_ctx(tmp_path, make_config(decimals=8, min_amount=10, default_amount=10))
        _run(ctx, f"/fuse {ADDR_A} 20")
        assert ctx.ledger.grants == [(ADDR_A, 20 * 10**8)]

    def test_quota_reply_reports_remaining(self, ctx):
        replies = _run(ctx, f"/fuse {ADDR_A} 60")
        assert replies == ["Not enough QSR available. Required 60.0 but only 50.0 QSR available"]

    def test_amount_too_small_reply(self, tmp_path):
        ctx = make_ctx(tmp_path, make_config(decimals=8, min_amount=10, default_amount=10))
        replies = _run(ctx, f"/fuse {ADDR_A} 5")
        assert replies[0].startswith("Amount too small. Needs to be at least 10.0 QSR.")

    def test_submission_failure_reply_hides_ledger_detail(self, ctx):
        ctx.ledger.fail_submit = True
        replies = _run(ctx, f"/fuse {ADDR_A} 10")
        assert "invalid address" not in replies[0]
        assert "Something bad happened" in replies[0]
        assert ctx.entry_store.get("42").entries == []

    def test_cancel_flow(self, ctx):
        replies = _run(ctx, ADDR_A, "/1", "/7")
        assert replies[1:] == ["Fuse entry cancel requested", "Can't find fuse entry with id 7"]
        assert ctx.ledger.cancels == ["tx-1"]

    def test_bad_usage_reply(self, ctx):
        replies = _run(ctx, "/fuse")
        assert replies[0].startswith("Incorrect number of parameters.")

    def test_non_ascii_digits_still_get_a_reply(self, ctx):
        processor = CommandProcessor(CommandHandler(ctx), ctx.store_lock, drain_order="fifo")

        async def scenario():
            processor.submit(inbound(f"/fuse {ADDR_A} ²", message_id=1))
            processor.submit(inbound("/³", message_id=2))
            while processor.backlog or processor.in_flight:
                task = processor.admit_once()
                if task is not None:
                    await task
                else:
                    await asyncio.sleep(0)

        asyncio.run(scenario())
        assert processor.stats == {"received": 2, "handled": 2, "failed": 0}
        replies = ctx.messenger.texts_for("42")
        assert replies[0].startswith("Amount must be a whole number.")
        assert replies[1].startswith("Unknown command '/³'")
        assert ctx.ledger.grants == []


class TestListing:
    def test_render_list(self, ctx):
        account = ctx.entry_store.get_or_create("42")
        lock = ctx.config.grants.lock_duration_seconds
        rows = [
            (GrantStatus.ACTIVE, 0),
            (GrantStatus.ACTIVE, lock + 60),
            (GrantStatus.PENDING, 0),
            (GrantStatus.CANCELED, 0),
            (GrantStatus.INVALID, 0),
        ]
        for status, age in rows:
            seq = account.new_sequence_number()
            account.entries.append(
                GrantRecord(
                    sequence_number=seq,
                    beneficiary=ADDR_A,
                    amount=5,
                    external_id=f"h{seq}",
                    created_at=T0 - timedelta(seconds=age),
                    status=status,
                )
            )
        ctx.now.advance(hours=1)

        text = CommandHandler(ctx).render_list(account)
        lines = text.splitlines()
        assert lines[0] == "Used 15.0/50.0 QSR"
        assert lines[1] == f"✅ 1 5.0 QSR to {ADDR_A} [09:00:00]"
        assert lines[2] == f"✅ /2 5.0 QSR to {ADDR_A}"
        assert lines[3] == f"⏳ 3 5.0 QSR to {ADDR_A} [pending]"
        assert lines[4] == f"❌ 4 5.0 QSR to {ADDR_A} [canceled]"
        assert lines[5] == f"❌ 5 5.0 QSR to {ADDR_A} [invalid]"


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3 * 3600 + 4 * 60 + 5) == "03:04:05"
    assert format_duration(-10) == "00:00:00"
