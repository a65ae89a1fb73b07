"""Odos smart order router integration (EVM chains).

API docs: https://docs.odos.xyz/build/api-docs
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

ODOS_API_URL = "https://api.odos.xyz"
QUOTE_PATH = "/sor/quote/v2"
ASSEMBLE_PATH = "/sor/assemble"

CHAIN_IDS = {
    "ethereum": 1,
    "arbitrum": 42161,
    "base": 8453,
    "optimism": 10,
}

# Odos expects the zero address for the native token
ETH_PSEUDO_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
ODOS_NATIVE_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_QUOTE_USER = "0x000000000000000000000000000000000000dead"
DEFAULT_SLIPPAGE_PERCENT = 0.5

HEALTHCHECK_SELL_TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
HEALTHCHECK_BUY_TOKEN = "0xdac17f958d2ee523a2206206994597c13d831ec7"
HEALTHCHECK_SELL_AMOUNT = "10000000"


class OdosQuoteResponse(BaseModel):
    out_amounts: list[str] = Field(alias="outAmounts")
    path_id: str = Field(alias="pathId")
    gas_estimate_value: Optional[float] = Field(default=None, alias="gasEstimateValue")


class OdosTransactionModel(BaseModel):
    to: str
    data: str
    value: str


class OdosAssembleResponse(BaseModel):
    transaction: OdosTransactionModel


class OdosClient(AggregatorClient):
    """Odos aggregator client."""

    def __init__(self, api_key: str = "", base_url: str = ODOS_API_URL, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "odos"

    @property
    def supported_chains(self) -> list[str]:
        return list(CHAIN_IDS.keys())

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key.strip():
            headers["Authorization"] = self.api_key
        return headers

    @staticmethod
    def _normalize_token(address: str) -> str:
        normalized = address.strip()
        if normalized.lower() == ETH_PSEUDO_ADDRESS:
            return ODOS_NATIVE_ADDRESS
        return normalized

    def _quote_payload(
        self,
        request: QuoteRequest,
        user_address: str,
        slippage_percent: float,
    ) -> dict:
        return {
            "chainId": CHAIN_IDS[request.chain],
            "inputTokens": [
                {
                    "tokenAddress": self._normalize_token(request.sell_token),
                    "amount": request.sell_amount,
                }
            ],
            "outputTokens": [
                {"tokenAddress": self._normalize_token(request.buy_token), "proportion": 1}
            ],
            "slippageLimitPercent": slippage_percent,
            "userAddr": user_address,
            "disableRFQs": True,
            "compact": True,
        }

    async def _post_quote(self, payload: dict) -> tuple[dict, OdosQuoteResponse]:
        data = await self._request_json("POST", f"{self.base_url}{QUOTE_PATH}", json=payload)
        return data, self._parse(OdosQuoteResponse, data, "quote")

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data, body = await self._post_quote(
            self._quote_payload(request, DEFAULT_QUOTE_USER, DEFAULT_SLIPPAGE_PERCENT)
        )
        if not body.out_amounts:
            raise UpstreamError("Odos quote amount is missing")

        return Quote(
            aggregator_id=self.name,
            buy_amount=self._require_amount(body.out_amounts[0]),
            estimated_gas_usd=body.gas_estimate_value,
            raw_payload=data,
        )

    async def build_swap_transaction(self, request: SwapRequest) -> EvmTransaction:
        """Quote for the wallet, then assemble the path into a transaction."""
        _, quote = await self._post_quote(
            self._quote_payload(request, request.wallet_address, request.slippage_bps / 100)
        )
        if not quote.path_id.strip():
            raise UpstreamError("Odos pathId is missing")

        data = await self._request_json(
            "POST",
            f"{self.base_url}{ASSEMBLE_PATH}",
            json={
                "userAddr": request.wallet_address,
                "pathId": quote.path_id,
                "simulate": False,
            },
        )
        body = self._parse(OdosAssembleResponse, data, "assemble")

        return EvmTransaction(
            to=body.transaction.to,
            data=body.transaction.data,
            value=body.transaction.value,
        )

    async def health_check(self) -> bool:
        payload = self._quote_payload(
            QuoteRequest(
                chain="ethereum",
                sell_token=HEALTHCHECK_SELL_TOKEN,
                buy_token=HEALTHCHECK_BUY_TOKEN,
                sell_amount=HEALTHCHECK_SELL_AMOUNT,
                sell_decimals=6,
                buy_decimals=6,
            ),
            DEFAULT_QUOTE_USER,
            DEFAULT_SLIPPAGE_PERCENT,
        )
        try:
            await self._post_quote(payload)
            return True
        except UpstreamError as e:
            logger.warning(f"Odos health check failed: {e}")
            return False
