"""0x Swap API integration (EVM chains).

Uses the AllowanceHolder quote endpoint for both pricing and transaction
building.
API docs: https://0x.org/docs/api#tag/Swap
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from swapconnect.errors import UpstreamError
from swapconnect.routing.base import (
    AggregatorClient,
    EvmTransaction,
    Quote,
    QuoteRequest,
    SwapRequest,
)

logger = logging.getLogger(__name__)

ZERO_X_API_URL = "https://api.0x.org"
ZERO_X_VERSION = "v2"
QUOTE_PATH = "/swap/allowance-holder/quote"
DEFAULT_TAKER_ADDRESS = "0x0000000000000000000000000000000000010000"

CHAIN_IDS = {
    "ethereum": 1,
    "arbitrum": 42161,
    "base": 8453,
    "optimism": 10,
}


class ZeroXTransactionModel(BaseModel):
    to: str
    data: str
    value: str


class ZeroXQuoteResponse(BaseModel):
    liquidity_available: bool = Field(alias="liquidityAvailable")
    buy_amount: Optional[str] = Field(default=None, alias="buyAmount")
    total_network_fee: Optional[str] = Field(default=None, alias="totalNetworkFee")
    transaction: Optional[ZeroXTransactionModel] = None


class ZeroXClient(AggregatorClient):
    """0x aggregator client for Ethereum, Arbitrum, Base and Optimism."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = ZERO_X_API_URL,
        taker_address: str = DEFAULT_TAKER_ADDRESS,
        **kwargs,
    ):
        """Initialize 0x client.

        Args:
            api_key: Optional 0x API key
            base_url: API base URL
            taker_address: Placeholder taker used for price-only quotes
        """
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.taker_address = taker_address

    @property
    def name(self) -> str:
        return "0x"

    @property
    def supported_chains(self) -> list[str]:
        return list(CHAIN_IDS.keys())

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "0x-version": ZERO_X_VERSION}
        if self.api_key.strip():
            headers["0x-api-key"] = self.api_key
        return headers

    def _quote_params(self, request: QuoteRequest, taker: str) -> dict:
        return {
            "chainId": str(CHAIN_IDS[request.chain]),
            "sellToken": request.sell_token,
            "buyToken": request.buy_token,
            "sellAmount": request.sell_amount,
            "taker": taker,
        }

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data = await self._request_json(
            "GET",
            f"{self.base_url}{QUOTE_PATH}",
            params=self._quote_params(request, self.taker_address),
        )
        body = self._parse(ZeroXQuoteResponse, data, "quote")

        if not body.liquidity_available:
            raise UpstreamError("0x has no liquidity for this pair")

        buy_amount = self._require_amount(body.buy_amount)
        logger.debug(f"0x quote {request.sell_token} -> {request.buy_token}: {buy_amount}")

        return Quote(
            aggregator_id=self.name,
            buy_amount=buy_amount,
            estimated_gas_usd=None,
            raw_payload=data,
            network_fee_wei=body.total_network_fee,
        )

    async def build_swap_transaction(self, request: SwapRequest) -> EvmTransaction:
        params = self._quote_params(request, request.wallet_address)
        params["slippageBps"] = str(max(request.slippage_bps, 1))

        data = await self._request_json("GET", f"{self.base_url}{QUOTE_PATH}", params=params)
        body = self._parse(ZeroXQuoteResponse, data, "swap")

        if not body.liquidity_available:
            raise UpstreamError("0x has no liquidity for this pair")
        if body.transaction is None:
            raise UpstreamError("0x swap transaction is missing in response")

        return EvmTransaction(
            to=body.transaction.to,
            data=body.transaction.data,
            value=body.transaction.value,
        )

    async def health_check(self) -> bool:
        try:
            await self._request_json("GET", f"{self.base_url}/healthz")
            return True
        except UpstreamError as e:
            logger.warning(f"0x health check failed: {e}")
            return False
