"""Faucet daemon lifecycle: context construction, startup, shutdown."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx

from ..context import AppContext
from ..control import CommandHandler, CommandProcessor
from ..errors import CorruptState
from ..ledger import HttpLedgerClient, ReconciliationEngine
from ..store import EntryStore
from ..transport import TelegramTransport
from ..utils.config_loader import ConfigLoader, FaucetConfig
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


@dataclass
class Runtime:
    ctx: AppContext
    processor: CommandProcessor
    reconciler: ReconciliationEngine
    transport: TelegramTransport
    ledger: HttpLedgerClient
    poll_task: Optional[asyncio.Task] = None


def build_runtime(config: FaucetConfig) -> Runtime:
    grants = config.grants
    entry_store = EntryStore(config.store.path, grants.to_base_units(grants.default_max_quota))
    ledger = HttpLedgerClient(
        config.ledger,
        httpx.AsyncClient(
            timeout=config.ledger.timeout_seconds,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        ),
    )
    transport = TelegramTransport(config.telegram)
    ctx = AppContext(config=config, entry_store=entry_store, ledger=ledger, messenger=transport)

    processor = CommandProcessor(
        CommandHandler(ctx),
        ctx.store_lock,
        tick_seconds=config.scheduler.command_tick_ms / 1000.0,
        drain_order=config.scheduler.drain_order,
    )
    return Runtime(
        ctx=ctx,
        processor=processor,
        reconciler=ReconciliationEngine(ctx),
        transport=transport,
        ledger=ledger,
    )


async def startup_event(app) -> None:
    """Called on FastAPI startup. An unreadable store aborts startup."""
    config = ConfigLoader().load_config()
    if not config.ledger.owner_address:
        logger.warning("ledger.owner_address is empty; reconciliation will see no entries")

    runtime = build_runtime(config)
    try:
        runtime.ctx.entry_store.load()
    except CorruptState as exc:
        logger.critical("Store is corrupt, refusing to start", path=str(runtime.ctx.entry_store.path), error=str(exc))
        await runtime.transport.aclose()
        await runtime.ledger.aclose()
        raise

    app.state.runtime = runtime
    app.state.ctx = runtime.ctx

    runtime.processor.start()
    runtime.reconciler.start()
    runtime.poll_task = asyncio.create_task(runtime.transport.poll_forever(runtime.processor.submit))
    logger.info("Faucet daemon started", accounts=len(runtime.ctx.entry_store.store.users))


async def shutdown_event(app) -> None:
    """Called on FastAPI shutdown."""
    runtime: Optional[Runtime] = getattr(app.state, "runtime", None)
    if runtime is None:
        return

    if runtime.poll_task:
        runtime.poll_task.cancel()
        await asyncio.gather(runtime.poll_task, return_exceptions=True)
    await runtime.reconciler.stop()
    await runtime.processor.stop()

    async with runtime.ctx.store_lock:
        runtime.ctx.entry_store.save()

    await runtime.transport.aclose()
    await runtime.ledger.aclose()
    logger.info("Faucet daemon stopped")
