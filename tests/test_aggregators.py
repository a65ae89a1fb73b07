"""Tests for the aggregator HTTP adapters (httpx MockTransport)."""

import json

import httpx
import pytest

from swapconnect.errors import UpstreamError, UpstreamTimeout
from swapconnect.routing.base import EvmTransaction, SolanaTransaction, SwapRequest
from swapconnect.routing.jupiter import JupiterClient
from swapconnect.routing.odos import ODOS_NATIVE_ADDRESS, OdosClient
from swapconnect.routing.paraswap import ParaSwapClient
from swapconnect.routing.zerox import ZeroXClient

from helpers import EVM_WALLET, SOL_MINT, USDC, USDC_MINT, make_quote_request, sample_value


def swap_request(chain: str = "ethereum", **overrides) -> SwapRequest:
    request = make_quote_request(chain, **overrides)
    return SwapRequest(
        chain=request.chain,
        sell_token=request.sell_token,
        buy_token=request.buy_token,
        sell_amount=request.sell_amount,
        sell_decimals=request.sell_decimals,
        buy_decimals=request.buy_decimals,
        wallet_address=EVM_WALLET,
        slippage_bps=50,
    )


def solana_quote_request():
    return make_quote_request(
        "solana", sell_token=SOL_MINT, buy_token=USDC_MINT, sell_amount="1000000000",
        sell_decimals=9,
    )


def timeout_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


class TestZeroXClient:
    """Tests for the 0x adapter."""

    @pytest.mark.asyncio
    async def test_get_quote(self, metrics):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "liquidityAvailable": True,
                    "buyAmount": "9900000",
                    "totalNetworkFee": "120000000000000",
                },
            )

        client = ZeroXClient(
            api_key="secret", metrics=metrics, transport=httpx.MockTransport(handler)
        )
        quote = await client.get_quote(make_quote_request())

        assert quote.aggregator_id == "0x"
        assert quote.buy_amount == "9900000"
        assert quote.network_fee_wei == "120000000000000"

        request = seen[0]
        assert request.url.path == "/swap/allowance-holder/quote"
        assert request.url.params["chainId"] == "1"
        assert request.url.params["sellAmount"] == "10000000"
        assert request.headers["0x-version"] == "v2"
        assert request.headers["0x-api-key"] == "secret"

    @pytest.mark.asyncio
    async def test_no_liquidity(self):
        def handler(request):
            return httpx.Response(200, json={"liquidityAvailable": False})

        client = ZeroXClient(transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError):
            await client.get_quote(make_quote_request())

    @pytest.mark.asyncio
    async def test_schema_mismatch(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": "shape"})

        client = ZeroXClient(transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError, match="schema"):
            await client.get_quote(make_quote_request())

    @pytest.mark.asyncio
    async def test_timeout_maps_to_upstream_timeout(self, metrics):
        client = ZeroXClient(metrics=metrics, transport=httpx.MockTransport(timeout_handler))

        with pytest.raises(UpstreamTimeout):
            await client.get_quote(make_quote_request())

        labels = {"provider": "0x", "method": "GET", "status_code": "timeout"}
        assert sample_value(metrics, "http_requests_total", labels) == 1

    @pytest.mark.asyncio
    async def test_http_error_status(self, metrics):
        def handler(request):
            return httpx.Response(500, text="internal")

        client = ZeroXClient(metrics=metrics, transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_quote(make_quote_request())

        assert not isinstance(exc_info.value, UpstreamTimeout)
        labels = {"provider": "0x", "method": "GET", "status_code": "500"}
        assert sample_value(metrics, "http_requests_total", labels) == 1

    @pytest.mark.asyncio
    async def test_build_swap_transaction(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "liquidityAvailable": True,
                    "buyAmount": "9900000",
                    "transaction": {"to": "0xabc", "data": "0x1234", "value": "0"},
                },
            )

        client = ZeroXClient(transport=httpx.MockTransport(handler))
        tx = await client.build_swap_transaction(swap_request())

        assert tx == EvmTransaction(to="0xabc", data="0x1234", value="0")
        assert seen[0].url.params["taker"] == EVM_WALLET
        assert seen[0].url.params["slippageBps"] == "50"

    @pytest.mark.asyncio
    async def test_build_without_transaction(self):
        def handler(request):
            return httpx.Response(200, json={"liquidityAvailable": True, "buyAmount": "1"})

        client = ZeroXClient(transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError, match="transaction"):
            await client.build_swap_transaction(swap_request())

    def test_supported_chains(self):
        client = ZeroXClient()

        assert client.supports_chain("arbitrum")
        assert not client.supports_chain("solana")


class TestParaSwapClient:
    """Tests for the ParaSwap adapter."""

    PRICE_BODY = {"priceRoute": {"destAmount": "9950000", "gasCostUSD": "1.25", "bestRoute": []}}

    @pytest.mark.asyncio
    async def test_get_quote(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=self.PRICE_BODY)

        client = ParaSwapClient(transport=httpx.MockTransport(handler))
        quote = await client.get_quote(make_quote_request())

        assert quote.aggregator_id == "paraswap"
        assert quote.buy_amount == "9950000"
        assert quote.estimated_gas_usd == 1.25

        params = seen[0].url.params
        assert seen[0].url.path == "/prices"
        assert params["srcToken"] == USDC.lower()
        assert params["side"] == "SELL"
        assert params["network"] == "1"
        assert params["destDecimals"] == "6"

    @pytest.mark.asyncio
    async def test_unparseable_gas_is_dropped(self):
        body = {"priceRoute": {"destAmount": "10", "gasCostUSD": "n/a"}}
        client = ParaSwapClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        )

        quote = await client.get_quote(make_quote_request())

        assert quote.estimated_gas_usd is None

    @pytest.mark.asyncio
    async def test_zero_amount_is_an_error(self):
        body = {"priceRoute": {"destAmount": "0"}}
        client = ParaSwapClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        )

        with pytest.raises(UpstreamError):
            await client.get_quote(make_quote_request())

    @pytest.mark.asyncio
    async def test_build_echoes_price_route(self):
        posted = []

        def handler(request):
            if request.url.path == "/prices":
                return httpx.Response(200, json=self.PRICE_BODY)
            posted.append(request)
            return httpx.Response(200, json={"to": "0xaugustus", "data": "0xfeed", "value": "0"})

        client = ParaSwapClient(transport=httpx.MockTransport(handler))
        tx = await client.build_swap_transaction(swap_request(chain="base"))

        assert tx.to == "0xaugustus"
        request = posted[0]
        assert request.url.path == "/transactions/8453"
        assert request.url.params["ignoreChecks"] == "true"
        payload = json.loads(request.content)
        assert payload["priceRoute"] == self.PRICE_BODY["priceRoute"]
        assert payload["userAddress"] == EVM_WALLET
        assert payload["slippage"] == 50


class TestOdosClient:
    """Tests for the Odos adapter."""

    @pytest.mark.asyncio
    async def test_get_quote_maps_native_token(self):
        payloads = []

        def handler(request):
            payloads.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={"outAmounts": ["9870000"], "pathId": "path-1", "gasEstimateValue": 2.5},
            )

        client = OdosClient(api_key="key", transport=httpx.MockTransport(handler))
        quote = await client.get_quote(
            make_quote_request(sell_token="0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE")
        )

        assert quote.buy_amount == "9870000"
        assert quote.estimated_gas_usd == 2.5
        assert payloads[0]["inputTokens"][0]["tokenAddress"] == ODOS_NATIVE_ADDRESS
        assert payloads[0]["outputTokens"][0]["proportion"] == 1
        assert payloads[0]["chainId"] == 1

    @pytest.mark.asyncio
    async def test_build_assembles_path(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/sor/quote/v2":
                return httpx.Response(200, json={"outAmounts": ["1"], "pathId": "path-9"})
            return httpx.Response(
                200, json={"transaction": {"to": "0xrouter", "data": "0xab", "value": "10"}}
            )

        client = OdosClient(transport=httpx.MockTransport(handler))
        tx = await client.build_swap_transaction(swap_request())

        assert tx == EvmTransaction(to="0xrouter", data="0xab", value="10")
        quote_payload = json.loads(seen[0].content)
        assert quote_payload["userAddr"] == EVM_WALLET
        assert quote_payload["slippageLimitPercent"] == 0.5
        assemble_payload = json.loads(seen[1].content)
        assert assemble_payload == {"userAddr": EVM_WALLET, "pathId": "path-9", "simulate": False}

    @pytest.mark.asyncio
    async def test_empty_out_amounts(self):
        body = {"outAmounts": [], "pathId": "p"}
        client = OdosClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        )

        with pytest.raises(UpstreamError):
            await client.get_quote(make_quote_request())


class TestJupiterClient:
    """Tests for the Jupiter adapter."""

    QUOTE_BODY = {"inputMint": SOL_MINT, "outputMint": USDC_MINT, "outAmount": "150000000"}

    @pytest.mark.asyncio
    async def test_get_quote(self, metrics):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=self.QUOTE_BODY)

        client = JupiterClient(metrics=metrics, transport=httpx.MockTransport(handler))
        quote = await client.get_quote(solana_quote_request())

        assert quote.aggregator_id == "jupiter"
        assert quote.buy_amount == "150000000"
        assert seen[0].url.params["inputMint"] == SOL_MINT
        assert seen[0].url.params["restrictIntermediateTokens"] == "true"

        labels = {"provider": "jupiter", "method": "GET", "status_code": "200"}
        assert sample_value(metrics, "http_requests_total", labels) == 1

    @pytest.mark.asyncio
    async def test_build_returns_solana_transaction(self, metrics):
        posted = []

        def handler(request):
            if request.url.path == "/swap/v1/quote":
                return httpx.Response(200, json=self.QUOTE_BODY)
            posted.append(json.loads(request.content))
            return httpx.Response(
                200, json={"swapTransaction": "AQID", "lastValidBlockHeight": 279_000_000}
            )

        client = JupiterClient(metrics=metrics, transport=httpx.MockTransport(handler))
        request = SwapRequest(
            chain="solana",
            sell_token=SOL_MINT,
            buy_token=USDC_MINT,
            sell_amount="1000000000",
            sell_decimals=9,
            buy_decimals=6,
            wallet_address="WalletPubkey1111111111111111111111111111111",
            slippage_bps=100,
        )
        tx = await client.build_swap_transaction(request)

        assert isinstance(tx, SolanaTransaction)
        assert tx.serialized_transaction == "AQID"
        assert tx.last_valid_block_height == 279_000_000
        assert posted[0]["quoteResponse"] == self.QUOTE_BODY
        assert posted[0]["userPublicKey"] == request.wallet_address

        # one observation per HTTP call: quote + swap
        post_labels = {"provider": "jupiter", "method": "POST", "status_code": "200"}
        get_labels = {"provider": "jupiter", "method": "GET", "status_code": "200"}
        assert sample_value(metrics, "http_requests_total", post_labels) == 1
        assert sample_value(metrics, "http_requests_total", get_labels) == 1

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = JupiterClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        )

        with pytest.raises(UpstreamError, match="non-JSON"):
            await client.get_quote(solana_quote_request())

    @pytest.mark.asyncio
    async def test_health_check_never_raises(self):
        client = JupiterClient(transport=httpx.MockTransport(timeout_handler))

        assert await client.health_check() is False
