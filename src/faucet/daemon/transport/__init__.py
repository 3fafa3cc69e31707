"""Chat transports."""

from .base import InboundMessage, Messenger
from .telegram import TelegramTransport, to_inbound

__all__ = ["InboundMessage", "Messenger", "TelegramTransport", "to_inbound"]
