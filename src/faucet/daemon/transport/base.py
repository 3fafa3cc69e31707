"""Transport-neutral message types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass(frozen=True)
class InboundMessage:
    sender_id: str
    chat_id: str
    message_id: int
    timestamp: datetime
    text: Optional[str]


class Messenger(Protocol):
    async def send_message(self, chat_id: str, text: str) -> bool: ...
