"""Price lookup: input preparation, quote selection and response formatting."""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Callable, Optional

from swapconnect.chains import chain_supports_address, get_chain
from swapconnect.errors import InvalidSwapRequest
from swapconnect.routing.base import QuoteRequest
from swapconnect.routing.selector import QuoteSelection, QuoteSelector
from swapconnect.services.contracts import PriceRequest, PriceResponse, ProviderQuote
from swapconnect.tokens import TokenInfo, TokenResolver

logger = logging.getLogger(__name__)

# Enough digits for uint256 base-unit amounts
UNITS_PRECISION = 80


def parse_units(amount: Decimal, decimals: int) -> int:
    """Scale a token amount to integer base units.

    Raises:
        InvalidSwapRequest: If the amount has more decimals than the token
    """
    with localcontext() as ctx:
        ctx.prec = UNITS_PRECISION
        scaled = amount.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidSwapRequest(f"Amount has more than {decimals} decimal places")
        return int(scaled)


def format_units(base_units: int, decimals: int) -> str:
    """Format integer base units as a plain decimal string."""
    with localcontext() as ctx:
        ctx.prec = UNITS_PRECISION
        value = Decimal(base_units).scaleb(-decimals).normalize()
    return format(value, "f")


@dataclass(frozen=True)
class PreparedPrice:
    """Validated price input ready for the aggregators."""

    chain: str
    normalized_amount: str
    cache_key: str
    from_token: TokenInfo
    to_token: TokenInfo
    sell_amount_base_units: str

    def to_quote_request(self) -> QuoteRequest:
        return QuoteRequest(
            chain=self.chain,
            sell_token=self.from_token.address,
            buy_token=self.to_token.address,
            sell_amount=self.sell_amount_base_units,
            sell_decimals=self.from_token.decimals,
            buy_decimals=self.to_token.decimals,
        )


class QuoteService:
    """Turns a user price request into the best aggregator offer."""

    def __init__(
        self,
        selector: QuoteSelector,
        resolver: Optional[TokenResolver] = None,
        metrics=None,
        cache_ttl: float = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.selector = selector
        self.resolver = resolver or TokenResolver()
        self.metrics = metrics
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._price_cache: dict[str, tuple[float, PriceResponse]] = {}

    @staticmethod
    def normalize_amount(amount: str) -> Decimal:
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation as e:
            raise InvalidSwapRequest("Amount must be a positive number") from e
        if not value.is_finite() or value <= 0:
            raise InvalidSwapRequest("Amount must be a positive number")
        return value

    def prepare(self, request: PriceRequest) -> PreparedPrice:
        """Validate the request and resolve tokens.

        Raises:
            InvalidSwapRequest: For a bad amount, chain or token
        """
        amount = self.normalize_amount(request.amount)
        chain = get_chain(request.chain)
        from_token = self.resolver.resolve_token(request.from_symbol, chain.name)
        to_token = self.resolver.resolve_token(request.to_symbol, chain.name)

        if from_token.address == to_token.address:
            raise InvalidSwapRequest("Cannot swap a token for itself")
        for token in (from_token, to_token):
            if not chain_supports_address(chain.name, token.address):
                raise InvalidSwapRequest(f"Invalid token address: {token.address}")

        normalized_amount = request.amount.strip()
        return PreparedPrice(
            chain=chain.name,
            normalized_amount=normalized_amount,
            cache_key=f"{chain.name}:{from_token.symbol}:{to_token.symbol}:{normalized_amount}",
            from_token=from_token,
            to_token=to_token,
            sell_amount_base_units=str(parse_units(amount, from_token.decimals)),
        )

    async def fetch_selection(self, prepared: PreparedPrice) -> QuoteSelection:
        return await self.selector.select_best(prepared.to_quote_request())

    def build_response(self, prepared: PreparedPrice, selection: QuoteSelection) -> PriceResponse:
        decimals = prepared.to_token.decimals
        best = selection.best_quote

        return PriceResponse(
            chain=prepared.chain,
            aggregator=best.aggregator_id,
            from_symbol=prepared.from_token.symbol,
            to_symbol=prepared.to_token.symbol,
            from_amount=prepared.normalized_amount,
            to_amount=format_units(best.buy_amount_units, decimals),
            estimated_gas_usd=best.estimated_gas_usd,
            providers_polled=selection.poll_count,
            provider_quotes=[
                ProviderQuote(
                    aggregator=quote.aggregator_id,
                    to_amount=format_units(quote.buy_amount_units, decimals),
                    estimated_gas_usd=quote.estimated_gas_usd,
                )
                for quote in selection.all_successful_quotes
            ],
        )

    def _get_cached(self, cache_key: str) -> Optional[PriceResponse]:
        entry = self._price_cache.get(cache_key)
        if entry is None:
            return None
        cached_at, response = entry
        if self._clock() - cached_at >= self.cache_ttl:
            del self._price_cache[cache_key]
            return None
        return response

    def _save_cached(self, cache_key: str, response: PriceResponse) -> None:
        if self.cache_ttl > 0:
            self._price_cache[cache_key] = (self._clock(), response)

    async def get_price(self, request: PriceRequest) -> PriceResponse:
        """Get the best price for a swap.

        Responses are cached per chain, token pair and amount for
        cache_ttl seconds (0 disables the cache).
        """
        try:
            prepared = self.prepare(request)
            cached = self._get_cached(prepared.cache_key)
            if cached is None:
                selection = await self.fetch_selection(prepared)
        except Exception:
            self._count("error")
            raise

        self._count("success")
        if cached is not None:
            logger.debug(f"Price cache hit for {prepared.cache_key}")
            return cached

        response = self.build_response(prepared, selection)
        self._save_cached(prepared.cache_key, response)
        logger.info(
            f"Price {response.from_amount} {response.from_symbol} -> "
            f"{response.to_amount} {response.to_symbol} via {response.aggregator}"
        )
        return response

    def _count(self, status: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_price_request(status)
