"""JSON-RPC ledger gateway client against a mocked transport."""

import asyncio
import json

import httpx
import pytest

from faucet.daemon.errors import LedgerError
from faucet.daemon.ledger import HttpLedgerClient, fetch_all_known_ids
from faucet.daemon.utils.config_loader import LedgerConfig

from conftest import ADDR_A


def _client(handler, **overrides):
    config = LedgerConfig(url="http://ledger.test/rpc", owner_address="z1owner", **overrides)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpLedgerClient(config, http_client=http)


def _rpc(result=None, error=None):
    def handler(request):
        body = json.loads(request.content)
        handler.calls.append(body)
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result(body) if callable(result) else result
        return httpx.Response(200, json=payload)

    handler.calls = []
    return handler


class TestSubmit:
    def test_submit_grant_returns_hash(self):
        handler = _rpc(result={"hash": "abc123"})
        client = _client(handler)
        assert asyncio.run(client.submit_grant(ADDR_A, 1000)) == "abc123"
        assert handler.calls[0]["method"] == "faucet.fuse"
        assert handler.calls[0]["params"] == [ADDR_A, 1000]

    def test_submit_grant_accepts_plain_string_result(self):
        client = _client(_rpc(result="def456"))
        assert asyncio.run(client.submit_grant(ADDR_A, 1)) == "def456"

    def test_rpc_error_becomes_ledger_error(self):
        client = _client(_rpc(error={"code": -32000, "message": "insufficient balance"}))
        with pytest.raises(LedgerError, match="insufficient balance"):
            asyncio.run(client.submit_grant(ADDR_A, 1))

    def test_http_failure_becomes_ledger_error(self):
        client = _client(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(LedgerError, match="transport error"):
            asyncio.run(client.submit_cancel("abc123"))

    def test_non_json_body(self):
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(LedgerError, match="not JSON"):
            asyncio.run(client.submit_cancel("abc123"))

    def test_custom_method_names(self):
        handler = _rpc(result=None)
        client = _client(handler, cancel_method="plasma.cancel")
        asyncio.run(client.submit_cancel("abc123"))
        assert handler.calls[0]["method"] == "plasma.cancel"
        assert handler.calls[0]["params"] == ["abc123"]


class TestListing:
    def test_pages_through_listing(self):
        ids = [f"id-{i}" for i in range(5)]

        def result(body):
            owner, page_index, page_size = body["params"]
            chunk = ids[page_index * page_size:(page_index + 1) * page_size]
            return {"count": len(ids), "list": [{"id": i, "amount": "1"} for i in chunk]}

        handler = _rpc(result=result)
        client = _client(handler, page_size=2)
        known = asyncio.run(fetch_all_known_ids(client, "z1owner", page_size=2))
        assert known == set(ids)
        assert [call["params"][1] for call in handler.calls] == [0, 1, 2]

    def test_missing_list_is_empty(self):
        client = _client(_rpc(result={"count": 0, "list": None}))
        page = asyncio.run(client.list_known_grants("z1owner", 0, 10))
        assert page.ids == []
        assert page.count == 0

    def test_entry_without_id(self):
        client = _client(_rpc(result={"count": 1, "list": [{"amount": "1"}]}))
        with pytest.raises(LedgerError, match="without id"):
            asyncio.run(client.list_known_grants("z1owner", 0, 10))
