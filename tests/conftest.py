import asyncio
from datetime import datetime, timedelta, UTC

import pytest

from faucet.daemon.context import AppContext
from faucet.daemon.errors import LedgerError
from faucet.daemon.ledger.client import LedgerPage
from faucet.daemon.store import EntryStore
from faucet.daemon.transport.base import InboundMessage
from faucet.daemon.utils.config_loader import FaucetConfig, GrantConfig, LedgerConfig

ADDR_A = "z1qzyzqtszv6fnw56rpnlq0npqt70tux0cl0yn5k"
ADDR_B = "z1qqjnwjjpnue8xmmpanz6csze6tcmtzzdtfsww7"
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeLedger:
    def __init__(self):
        self.known: set[str] = set()
        self.grants: list[tuple[str, int]] = []
        self.cancels: list[str] = []
        self.fail_submit = False
        self.fail_cancel = False
        self.fail_list = False
        self.list_calls = 0
        self.release: asyncio.Event | None = None
        self._next = 0

    async def submit_grant(self, beneficiary: str, amount: int) -> str:
        if self.release is not None:
            await self.release.wait()
        if self.fail_submit:
            raise LedgerError("account block rejected: invalid address")
        self._next += 1
        self.grants.append((beneficiary, amount))
        return f"tx-{self._next}"

    async def submit_cancel(self, external_id: str) -> None:
        if self.fail_cancel:
            raise LedgerError("node unreachable")
        self.cancels.append(external_id)

    async def list_known_grants(self, owner: str, page_index: int, page_size: int) -> LedgerPage:
        self.list_calls += 1
        if self.fail_list:
            raise LedgerError("node unreachable")
        ordered = sorted(self.known)
        start = page_index * page_size
        return LedgerPage(ids=ordered[start:start + page_size], count=len(ordered))

    async def aclose(self) -> None:
        pass


class FakeMessenger:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, chat_id: str, text: str) -> bool:
        self.sent.append((chat_id, text))
        return True

    def texts_for(self, chat_id: str) -> list[str]:
        return [text for cid, text in self.sent if cid == chat_id]


class Clock:
    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def make_config(**grant_overrides) -> FaucetConfig:
    grants = {"decimals": 0, "min_amount": 1, "default_amount": 10, "default_max_quota": 50}
    grants.update(grant_overrides)
    return FaucetConfig(
        grants=GrantConfig(**grants),
        ledger=LedgerConfig(owner_address="z1owner", page_size=1024),
    )


def make_ctx(tmp_path, config: FaucetConfig | None = None) -> AppContext:
    """Build a context outside of a running loop; asyncio.Lock binds lazily."""
    config = config or make_config()
    grants = config.grants
    entry_store = EntryStore(tmp_path / "db.json", grants.to_base_units(grants.default_max_quota))
    entry_store.loaded = True
    return AppContext(
        config=config,
        entry_store=entry_store,
        ledger=FakeLedger(),
        messenger=FakeMessenger(),
        now=Clock(),
    )


def inbound(text, sender="42", message_id=1):
    return InboundMessage(
        sender_id=sender,
        chat_id=sender,
        message_id=message_id,
        timestamp=T0,
        text=text,
    )


@pytest.fixture
def ctx(tmp_path):
    return make_ctx(tmp_path)
