"""Jupiter DEX aggregator integration for Solana.

Uses the Jupiter Swap API v1 for quotes and serialized swap transactions.
API docs: https://dev.jup.ag/docs/swap-api
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from swapconnect.errors import UpstreamError
from swapconnect.routing.base import (
    AggregatorClient,
    Quote,
    QuoteRequest,
    SolanaTransaction,
    SwapRequest,
)

logger = logging.getLogger(__name__)

JUPITER_API_URL = "https://lite-api.jup.ag"
QUOTE_PATH = "/swap/v1/quote"
SWAP_PATH = "/swap/v1/swap"
DEFAULT_SLIPPAGE_BPS = 50

HEALTHCHECK_INPUT_MINT = "So11111111111111111111111111111111111111112"
HEALTHCHECK_OUTPUT_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
HEALTHCHECK_AMOUNT = "100000000"


class JupiterQuoteResponse(BaseModel):
    out_amount: str = Field(alias="outAmount")


class JupiterSwapResponse(BaseModel):
    swap_transaction: str = Field(alias="swapTransaction")
    last_valid_block_height: Optional[int] = Field(default=None, alias="lastValidBlockHeight")


class JupiterClient(AggregatorClient):
    """Jupiter aggregator client for Solana.

    Jupiter aggregates liquidity from Raydium, Orca, Meteora and other
    Solana DEXes.
    """

    def __init__(self, api_key: str = "", base_url: str = JUPITER_API_URL, **kwargs):
        """Initialize Jupiter client.

        Args:
            api_key: Optional API key for higher rate limits
            base_url: API base URL
        """
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "jupiter"

    @property
    def supported_chains(self) -> list[str]:
        return ["solana"]

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key.strip():
            headers["x-api-key"] = self.api_key
        return headers

    async def _fetch_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: str,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> tuple[dict, JupiterQuoteResponse]:
        data = await self._request_json(
            "GET",
            f"{self.base_url}{QUOTE_PATH}",
            params={
                "inputMint": input_mint,
                "outputMint": output_mint,
                "amount": amount,
                "slippageBps": str(slippage_bps),
                "restrictIntermediateTokens": "true",
            },
        )
        return data, self._parse(JupiterQuoteResponse, data, "quote")

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data, body = await self._fetch_quote(
            request.sell_token, request.buy_token, request.sell_amount
        )

        return Quote(
            aggregator_id=self.name,
            buy_amount=self._require_amount(body.out_amount),
            estimated_gas_usd=None,
            raw_payload=data,
        )

    async def build_swap_transaction(self, request: SwapRequest) -> SolanaTransaction:
        """Build an unsigned swap transaction for the wallet.

        A fresh quote is fetched with the user's slippage; Jupiter returns
        the serialized transaction (base64) plus the block height after
        which it can no longer land.
        """
        quote_response, _ = await self._fetch_quote(
            request.sell_token,
            request.buy_token,
            request.sell_amount,
            slippage_bps=max(request.slippage_bps, 1),
        )

        data = await self._request_json(
            "POST",
            f"{self.base_url}{SWAP_PATH}",
            json={
                "quoteResponse": quote_response,
                "userPublicKey": request.wallet_address,
                "wrapAndUnwrapSol": True,
                "dynamicComputeUnitLimit": True,
                "prioritizationFeeLamports": "auto",
            },
        )
        body = self._parse(JupiterSwapResponse, data, "swap")

        if not body.swap_transaction:
            raise UpstreamError("Jupiter swap transaction is missing in response")

        return SolanaTransaction(
            serialized_transaction=body.swap_transaction,
            last_valid_block_height=body.last_valid_block_height,
        )

    async def health_check(self) -> bool:
        try:
            await self._fetch_quote(
                HEALTHCHECK_INPUT_MINT, HEALTHCHECK_OUTPUT_MINT, HEALTHCHECK_AMOUNT
            )
            return True
        except UpstreamError as e:
            logger.warning(f"Jupiter health check failed: {e}")
            return False
