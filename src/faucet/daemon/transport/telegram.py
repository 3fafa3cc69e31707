"""Telegram Bot API transport: long polling in, sendMessage out."""

from __future__ import annotations

import asyncio
from datetime import datetime, UTC
from typing import Any, Callable

import httpx

from ..utils.config_loader import TelegramConfig
from ..utils.logging_config import StructuredLogger
from .base import InboundMessage

logger = StructuredLogger(__name__)


def to_inbound(update: dict[str, Any]) -> InboundMessage | None:
    """Convert a getUpdates item to an InboundMessage; non-message updates yield None."""
    msg = update.get("message")
    if not isinstance(msg, dict):
        return None
    sender = msg.get("from") or {}
    chat = msg.get("chat") or {}
    if "id" not in sender or "id" not in chat:
        return None
    return InboundMessage(
        sender_id=str(sender["id"]),
        chat_id=str(chat["id"]),
        message_id=int(msg.get("message_id", 0)),
        timestamp=datetime.fromtimestamp(int(msg.get("date", 0)), UTC),
        text=msg.get("text"),
    )


class TelegramTransport:
    retry_delay_seconds = 5.0

    def __init__(self, config: TelegramConfig, http_client: httpx.AsyncClient | None = None):
        if not config.token:
            raise ValueError("Telegram token is required (FAUCET_TELEGRAM_TOKEN)")
        self.config = config
        self._base = f"{config.api_base.rstrip('/')}/bot{config.token}"
        self._client = http_client or httpx.AsyncClient(timeout=config.request_timeout_seconds)
        self._offset: int | None = None
        self._running = False

    async def aclose(self) -> None:
        self._running = False
        if not self._client.is_closed:
            await self._client.aclose()

    async def send_message(self, chat_id: str, text: str) -> bool:
        try:
            response = await self._client.post(
                f"{self._base}/sendMessage",
                json={"chat_id": chat_id, "text": text},
            )
            response.raise_for_status()
            return bool(response.json().get("ok"))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("sendMessage failed", chat_id=chat_id, error=str(exc))
            return False

    async def get_updates(self) -> list[InboundMessage]:
        params: dict[str, Any] = {
            "timeout": self.config.poll_timeout_seconds,
            "allowed_updates": '["message"]',
        }
        if self._offset is not None:
            params["offset"] = self._offset

        response = await self._client.get(
            f"{self._base}/getUpdates",
            params=params,
            timeout=self.config.poll_timeout_seconds + self.config.request_timeout_seconds,
        )
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise httpx.HTTPError(f"getUpdates rejected: {body.get('description')}")

        messages = []
        for update in body.get("result") or []:
            update_id = int(update.get("update_id", 0))
            self._offset = max(self._offset or 0, update_id + 1)
            inbound = to_inbound(update)
            if inbound is not None:
                messages.append(inbound)
        return messages

    async def poll_forever(self, sink: Callable[[InboundMessage], None]) -> None:
        logger.info("Telegram polling started")
        self._running = True
        while self._running:
            try:
                for inbound in await self.get_updates():
                    sink(inbound)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Telegram polling error", error=str(e), error_type=type(e).__name__)
                await asyncio.sleep(self.retry_delay_seconds)
