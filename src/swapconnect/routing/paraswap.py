"""ParaSwap aggregator integration (EVM chains).

API docs: https://developers.paraswap.network/api/get-rate-for-a-token-pair
"""

import logging
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from swapconnect.errors import UpstreamError
from swapconnect.routing.base import (
    AggregatorClient,
    EvmTransaction,
    Quote,
    QuoteRequest,
    SwapRequest,
)

logger = logging.getLogger(__name__)

PARASWAP_API_URL = "https://api.paraswap.io"
NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
SELL_SIDE = "SELL"

NETWORKS = {
    "ethereum": 1,
    "arbitrum": 42161,
    "base": 8453,
    "optimism": 10,
}

# Health check: 0.001 ETH -> USDC on Ethereum
HEALTHCHECK_BUY_TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
HEALTHCHECK_SELL_AMOUNT = "1000000000000000"


class ParaSwapPriceRoute(BaseModel):
    model_config = ConfigDict(extra="allow")

    dest_amount: str = Field(alias="destAmount")
    gas_cost_usd: Optional[str] = Field(default=None, alias="gasCostUSD")


class ParaSwapPriceResponse(BaseModel):
    price_route: ParaSwapPriceRoute = Field(alias="priceRoute")


class ParaSwapTransactionResponse(BaseModel):
    to: str
    data: str
    value: str


class ParaSwapClient(AggregatorClient):
    """ParaSwap aggregator client."""

    def __init__(self, base_url: str = PARASWAP_API_URL, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "paraswap"

    @property
    def supported_chains(self) -> list[str]:
        return list(NETWORKS.keys())

    @staticmethod
    def _normalize_token(address: str) -> str:
        return address.strip().lower()

    @staticmethod
    def _parse_gas_usd(value: Optional[str]) -> Optional[float]:
        if value is None:
            return None
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None

    def _price_params(self, request: QuoteRequest) -> dict:
        return {
            "srcToken": self._normalize_token(request.sell_token),
            "destToken": self._normalize_token(request.buy_token),
            "amount": request.sell_amount,
            "srcDecimals": str(request.sell_decimals),
            "destDecimals": str(request.buy_decimals),
            "side": SELL_SIDE,
            "network": str(NETWORKS[request.chain]),
        }

    async def _fetch_price(self, request: QuoteRequest) -> tuple[dict, ParaSwapPriceResponse]:
        data = await self._request_json(
            "GET", f"{self.base_url}/prices", params=self._price_params(request)
        )
        return data, self._parse(ParaSwapPriceResponse, data, "price")

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data, body = await self._fetch_price(request)
        buy_amount = self._require_amount(body.price_route.dest_amount)

        return Quote(
            aggregator_id=self.name,
            buy_amount=buy_amount,
            estimated_gas_usd=self._parse_gas_usd(body.price_route.gas_cost_usd),
            raw_payload=data,
        )

    async def build_swap_transaction(self, request: SwapRequest) -> EvmTransaction:
        """Build a swap transaction.

        ParaSwap needs the full priceRoute from /prices echoed back, so the
        price is fetched again for the wallet before building.
        """
        data, _ = await self._fetch_price(request)
        network = NETWORKS[request.chain]

        tx_data = await self._request_json(
            "POST",
            f"{self.base_url}/transactions/{network}",
            params={"ignoreChecks": "true"},
            json={
                "srcToken": self._normalize_token(request.sell_token),
                "destToken": self._normalize_token(request.buy_token),
                "srcAmount": request.sell_amount,
                "srcDecimals": request.sell_decimals,
                "destDecimals": request.buy_decimals,
                "userAddress": request.wallet_address,
                "slippage": request.slippage_bps,
                "priceRoute": data["priceRoute"],
            },
        )
        body = self._parse(ParaSwapTransactionResponse, tx_data, "transaction")

        return EvmTransaction(to=body.to, data=body.data, value=body.value)

    async def health_check(self) -> bool:
        try:
            await self._request_json(
                "GET",
                f"{self.base_url}/prices",
                params={
                    "srcToken": NATIVE_TOKEN,
                    "destToken": HEALTHCHECK_BUY_TOKEN,
                    "amount": HEALTHCHECK_SELL_AMOUNT,
                    "srcDecimals": "18",
                    "destDecimals": "6",
                    "side": SELL_SIDE,
                    "network": str(NETWORKS["ethereum"]),
                },
            )
            return True
        except UpstreamError as e:
            logger.warning(f"ParaSwap health check failed: {e}")
            return False
