"""Serialized command processor.

Inbound messages land in an unbounded backlog. A tick admits at most one
message when nothing is in flight, and the admitted handler runs while
holding the store lock shared with reconciliation.

Drain order defaults to LIFO: the newest message is admitted first and older
ones wait, possibly indefinitely under sustained load. ``fifo`` admits the
oldest message instead.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Literal, Optional

from ..transport.base import InboundMessage
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

Handler = Callable[[InboundMessage], Awaitable[None]]


class CommandProcessor:
    def __init__(
        self,
        handler: Handler,
        lock: asyncio.Lock,
        tick_seconds: float = 0.1,
        drain_order: Literal["lifo", "fifo"] = "lifo",
    ):
        self.handler = handler
        self.lock = lock
        self.tick_seconds = tick_seconds
        self.drain_order = drain_order
        self.backlog: list[InboundMessage] = []
        self.in_flight: Optional[asyncio.Task] = None
        self.stats = {"received": 0, "handled": 0, "failed": 0}
        self._loop_task: Optional[asyncio.Task] = None

    def submit(self, msg: InboundMessage) -> None:
        self.backlog.append(msg)
        self.stats["received"] += 1

    def admit_once(self) -> Optional[asyncio.Task]:
        """Admit one backlog item if the gate is open. Returns the handler task."""
        if self.in_flight is not None or not self.backlog:
            return None
        msg = self.backlog.pop() if self.drain_order == "lifo" else self.backlog.pop(0)
        self.in_flight = asyncio.create_task(self._handle(msg))
        return self.in_flight

    async def _handle(self, msg: InboundMessage) -> None:
        try:
            async with self.lock:
                await self.handler(msg)
            self.stats["handled"] += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats["failed"] += 1
            logger.error(
                "Failed to handle message",
                sender=msg.sender_id,
                message_id=msg.message_id,
                error=str(e),
            )
        finally:
            self.in_flight = None

    async def run_forever(self) -> None:
        logger.info("Command processor started", tick_seconds=self.tick_seconds, drain_order=self.drain_order)
        while True:
            self.admit_once()
            await asyncio.sleep(self.tick_seconds)

    def start(self) -> None:
        self._loop_task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        """Stop admitting and wait for the in-flight handler, if any."""
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self.in_flight is not None:
            await asyncio.gather(self.in_flight, return_exceptions=True)
        if self.backlog:
            logger.warning("Command processor stopped with unhandled backlog", pending=len(self.backlog))
