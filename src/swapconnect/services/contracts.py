"""Request and response contracts for price lookups and swap sessions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from swapconnect.chains import DEFAULT_CHAIN


class PriceRequest(BaseModel):
    """Request for the best price of a swap."""

    amount: str = Field(..., description="Amount to sell in token units (e.g. '10.5')")
    from_symbol: str = Field(..., description="Token to sell (e.g. USDC)")
    to_symbol: str = Field(..., description="Token to buy")
    chain: str = Field(default=DEFAULT_CHAIN, description="Chain name")
    user_id: Optional[str] = Field(None, description="Requesting user")


class ProviderQuote(BaseModel):
    """One aggregator's offer, formatted for display."""

    aggregator: str
    to_amount: str
    estimated_gas_usd: Optional[float] = None


class PriceResponse(BaseModel):
    """Best price across aggregators."""

    chain: str
    aggregator: str = Field(..., description="Aggregator with the best price")
    from_symbol: str
    to_symbol: str
    from_amount: str
    to_amount: str
    estimated_gas_usd: Optional[float] = None
    providers_polled: int = Field(..., description="Aggregators asked for a quote")
    provider_quotes: list[ProviderQuote] = Field(default_factory=list)


class SwapCommand(BaseModel):
    """Request to start a swap session."""

    user_id: str
    amount: str
    from_symbol: str
    to_symbol: str
    chain: str = DEFAULT_CHAIN


class SwapSessionResponse(PriceResponse):
    """Best price plus the wallet link that starts the session."""

    session_id: str
    wallet_uri: str = Field(..., description="Pairing URI or Phantom connect link")
    expires_at: datetime
