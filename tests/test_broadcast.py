"""Tests for the Solana JSON-RPC broadcaster."""

import base64
import json

import httpx
import pytest

from swapconnect.broadcast import SolanaRpcBroadcaster
from swapconnect.errors import BroadcastRejected, UpstreamError, UpstreamTimeout

from helpers import sample_value

SIGNED_TX = b"\x01signed"


def rpc_handler(block_height: int = 100, send_result=None, calls=None):
    """JSON-RPC handler answering getBlockHeight and sendTransaction."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body)
        if body["method"] == "getBlockHeight":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": block_height})
        result = send_result if send_result is not None else {"result": "5signature"}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, **result})

    return handler


class TestSolanaRpcBroadcaster:
    """Tests for SolanaRpcBroadcaster.broadcast."""

    @pytest.mark.asyncio
    async def test_broadcast_within_bound(self, metrics):
        calls = []
        broadcaster = SolanaRpcBroadcaster(
            rpc_url="https://rpc.test",
            metrics=metrics,
            transport=httpx.MockTransport(rpc_handler(block_height=100, calls=calls)),
        )

        signature = await broadcaster.broadcast(SIGNED_TX, validity_bound=150)

        assert signature == "5signature"
        assert [call["method"] for call in calls] == ["getBlockHeight", "sendTransaction"]
        encoded, options = calls[1]["params"]
        assert base64.b64decode(encoded) == SIGNED_TX
        assert options == {
            "encoding": "base64",
            "skipPreflight": False,
            "preflightCommitment": "confirmed",
        }
        labels = {"provider": "solana_rpc", "method": "sendTransaction", "status_code": "200"}
        assert sample_value(metrics, "http_requests_total", labels) == 1

    @pytest.mark.asyncio
    async def test_bound_equal_to_height_is_still_valid(self):
        broadcaster = SolanaRpcBroadcaster(
            transport=httpx.MockTransport(rpc_handler(block_height=150))
        )

        assert await broadcaster.broadcast(SIGNED_TX, validity_bound=150) == "5signature"

    @pytest.mark.asyncio
    async def test_elapsed_bound_never_sends(self):
        calls = []
        broadcaster = SolanaRpcBroadcaster(
            transport=httpx.MockTransport(rpc_handler(block_height=151, calls=calls))
        )

        with pytest.raises(BroadcastRejected):
            await broadcaster.broadcast(SIGNED_TX, validity_bound=150)

        assert [call["method"] for call in calls] == ["getBlockHeight"]

    @pytest.mark.asyncio
    async def test_rpc_error_is_rejection(self):
        error = {"error": {"code": -32002, "message": "Blockhash not found"}}
        broadcaster = SolanaRpcBroadcaster(
            transport=httpx.MockTransport(rpc_handler(send_result=error))
        )

        with pytest.raises(BroadcastRejected, match="Blockhash not found"):
            await broadcaster.broadcast(SIGNED_TX, validity_bound=150)

    @pytest.mark.asyncio
    async def test_missing_signature(self):
        broadcaster = SolanaRpcBroadcaster(
            transport=httpx.MockTransport(rpc_handler(send_result={"result": None}))
        )

        with pytest.raises(BroadcastRejected):
            await broadcaster.broadcast(SIGNED_TX, validity_bound=None)

    @pytest.mark.asyncio
    async def test_http_failure(self):
        broadcaster = SolanaRpcBroadcaster(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )

        with pytest.raises(UpstreamError):
            await broadcaster.broadcast(SIGNED_TX, validity_bound=150)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        broadcaster = SolanaRpcBroadcaster(transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamTimeout):
            await broadcaster.broadcast(SIGNED_TX, validity_bound=150)
