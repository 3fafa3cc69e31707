"""Ledger gateway clients.

The gateway holds the faucet's signing key; the daemon only asks it to fuse,
cancel and list entries owned by the faucet address.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
from typing import Any, Protocol

import httpx

from ..errors import LedgerError
from ..utils.config_loader import LedgerConfig
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


@dataclass
class LedgerPage:
    ids: list[str] = field(default_factory=list)
    count: int | None = None


class LedgerClient(Protocol):
    async def submit_grant(self, beneficiary: str, amount: int) -> str: ...

    async def submit_cancel(self, external_id: str) -> None: ...

    async def list_known_grants(self, owner: str, page_index: int, page_size: int) -> LedgerPage: ...

    async def aclose(self) -> None: ...


async def fetch_all_known_ids(client: LedgerClient, owner: str, page_size: int) -> set[str]:
    """Page through the authoritative list until a short page or ``count`` is reached."""
    known: set[str] = set()
    collected = 0
    for page_index in itertools.count():
        page = await client.list_known_grants(owner, page_index, page_size)
        known.update(page.ids)
        collected += len(page.ids)
        if len(page.ids) < page_size:
            break
        if page.count is not None and collected >= page.count:
            break
    return known


class HttpLedgerClient:
    """JSON-RPC 2.0 client over a shared httpx.AsyncClient."""

    def __init__(self, config: LedgerConfig, http_client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.config.url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise LedgerError(f"{method}: transport error: {exc}") from exc
        except ValueError as exc:
            raise LedgerError(f"{method}: response is not JSON") from exc

        if not isinstance(body, dict):
            raise LedgerError(f"{method}: unexpected response shape")
        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LedgerError(f"{method}: {message}")
        if "result" not in body:
            raise LedgerError(f"{method}: response has no result")
        return body["result"]

    async def submit_grant(self, beneficiary: str, amount: int) -> str:
        result = await self._call(self.config.submit_method, [beneficiary, amount])
        tx_hash = result.get("hash") if isinstance(result, dict) else result
        if not isinstance(tx_hash, str) or not tx_hash:
            raise LedgerError(f"{self.config.submit_method}: missing transaction hash")
        logger.info("Grant submitted", beneficiary=beneficiary, amount=amount, external_id=tx_hash)
        return tx_hash

    async def submit_cancel(self, external_id: str) -> None:
        await self._call(self.config.cancel_method, [external_id])
        logger.info("Cancel submitted", external_id=external_id)

    async def list_known_grants(self, owner: str, page_index: int, page_size: int) -> LedgerPage:
        result = await self._call(self.config.list_method, [owner, page_index, page_size])
        if not isinstance(result, dict):
            raise LedgerError(f"{self.config.list_method}: unexpected result shape")
        items = result.get("list") or []
        try:
            ids = [str(item["id"]) for item in items]
        except (KeyError, TypeError) as exc:
            raise LedgerError(f"{self.config.list_method}: entry without id") from exc
        count = result.get("count")
        return LedgerPage(ids=ids, count=int(count) if isinstance(count, int) else None)
