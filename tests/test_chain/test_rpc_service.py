"""Tests for the Solana RPC HTTP service — uses httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from solana_tax.chain.rpc.service import SolanaRPCService
from solana_tax.config.settings import RPCConfig
from solana_tax.errors.chain_errors import RPCError
from tests.helpers import SYSTEM_PROGRAM, WALLET

_URL = "https://rpc.test.com"


def _mock_transport(handler):
    """Create an httpx MockTransport from a handler function."""
    return httpx.MockTransport(handler)


async def _connected(handler) -> SolanaRPCService:
    rpc = SolanaRPCService(RPCConfig(url=_URL))
    await rpc.connect()
    await rpc._client.aclose()
    rpc._client = httpx.AsyncClient(transport=_mock_transport(handler), base_url=_URL)
    return rpc


def _ok(result, request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestRPCLifecycle:
    async def test_not_connected_by_default(self):
        assert SolanaRPCService(RPCConfig(url=_URL)).is_connected is False

    async def test_connect_and_close(self):
        rpc = SolanaRPCService(RPCConfig(url=_URL))
        await rpc.connect()
        assert rpc.is_connected is True
        await rpc.close()
        assert rpc.is_connected is False

    async def test_not_connected_raises(self):
        rpc = SolanaRPCService(RPCConfig(url=_URL))
        with pytest.raises(RPCError, match="not connected"):
            await rpc.get_balance(WALLET)


class TestSignatures:
    async def test_request_shape_and_parse(self):
        seen = {}

        def handler(request: httpx.Request):
            seen.update(json.loads(request.content))
            return _ok(
                [
                    {"signature": "s2", "slot": 2, "blockTime": 200, "err": None},
                    {"signature": "s1", "slot": 1, "blockTime": 100, "err": {"x": 1}},
                ],
                request,
            )

        rpc = await _connected(handler)
        sigs = await rpc.get_signatures_for_address(WALLET, limit=50)
        assert seen["method"] == "getSignaturesForAddress"
        assert seen["params"][0] == WALLET
        assert seen["params"][1]["limit"] == 50
        assert [s.signature for s in sigs] == ["s2", "s1"]
        assert sigs[1].failed is True
        await rpc.close()

    async def test_null_result_is_empty(self):
        rpc = await _connected(lambda request: _ok(None, request))
        assert await rpc.get_signatures_for_address(WALLET) == []
        await rpc.close()


class TestGetTransaction:
    async def test_unknown_signature_returns_none(self):
        rpc = await _connected(lambda request: _ok(None, request))
        assert await rpc.get_transaction("missing") is None
        await rpc.close()

    async def test_parses_envelope(self):
        result = {
            "slot": 9,
            "blockTime": 1000,
            "meta": {"err": None, "fee": 5000, "preBalances": [10, 1], "postBalances": [5, 1]},
            "transaction": {
                "message": {
                    "accountKeys": [WALLET, SYSTEM_PROGRAM],
                    "instructions": [{"programIdIndex": 1}],
                }
            },
        }

        def handler(request: httpx.Request):
            body = json.loads(request.content)
            assert body["method"] == "getTransaction"
            assert body["params"][1]["maxSupportedTransactionVersion"] == 0
            return _ok(result, request)

        rpc = await _connected(handler)
        env = await rpc.get_transaction("sig-x")
        assert env is not None
        assert env.signature == "sig-x"
        assert env.lamport_delta(WALLET) == -5
        await rpc.close()


class TestBalance:
    async def test_context_value_result(self):
        rpc = await _connected(
            lambda request: _ok({"context": {"slot": 1}, "value": 2_500_000_000}, request)
        )
        assert await rpc.get_balance(WALLET) == 2_500_000_000
        await rpc.close()


class TestErrors:
    async def test_http_error_status(self):
        rpc = await _connected(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(RPCError, match="HTTP 503"):
            await rpc.get_balance(WALLET)
        await rpc.close()

    async def test_rate_limited(self):
        rpc = await _connected(lambda request: httpx.Response(429))
        with pytest.raises(RPCError) as exc_info:
            await rpc.get_balance(WALLET)
        assert exc_info.value.status_code == 429
        await rpc.close()

    async def test_json_rpc_error(self):
        def handler(request: httpx.Request):
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}},
            )

        rpc = await _connected(handler)
        with pytest.raises(RPCError, match="bad"):
            await rpc.get_balance(WALLET)
        await rpc.close()

    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        rpc = await _connected(handler)
        with pytest.raises(RPCError, match="failed"):
            await rpc.get_balance(WALLET)
        await rpc.close()

    async def test_invalid_json(self):
        rpc = await _connected(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(RPCError, match="invalid JSON"):
            await rpc.get_balance(WALLET)
        await rpc.close()

    async def test_non_object_body(self):
        rpc = await _connected(lambda request: httpx.Response(200, json=["upstream overloaded"]))
        with pytest.raises(RPCError, match="non-object"):
            await rpc.get_transaction("sig-x")
        await rpc.close()

    async def test_malformed_transaction_result(self):
        rpc = await _connected(lambda request: _ok(["not-an-envelope"], request))
        with pytest.raises(RPCError, match="malformed"):
            await rpc.get_transaction("sig-x")
        await rpc.close()

    async def test_malformed_signature_rows(self):
        rpc = await _connected(lambda request: _ok(["s1", 7], request))
        with pytest.raises(RPCError, match="malformed"):
            await rpc.get_signatures_for_address(WALLET)
        await rpc.close()
