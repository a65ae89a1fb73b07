"""Concurrent quote fan-out and best-price selection."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from swapconnect.errors import AllAggregatorsFailed, NoAggregatorsForChain
from swapconnect.routing.base import AggregatorClient, Quote, QuoteRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteSelection:
    """Outcome of one price lookup across aggregators."""

    best_quote: Quote
    all_successful_quotes: tuple[Quote, ...]
    poll_count: int


class QuoteSelector:
    """Polls every aggregator that supports a chain and picks the best price."""

    def __init__(self, clients: Optional[list[AggregatorClient]] = None):
        self.clients: list[AggregatorClient] = clients or []

    def candidates_for(self, chain: str) -> list[AggregatorClient]:
        return [client for client in self.clients if client.supports_chain(chain)]

    async def select_best(self, request: QuoteRequest) -> QuoteSelection:
        """Get the best quote across all aggregators for the chain.

        All calls run concurrently and every one is allowed to settle; a
        failing backend never aborts the others. Buy amounts are compared
        as integers, and ties keep the first quote in aggregator order.

        Raises:
            NoAggregatorsForChain: If no client supports the chain
            AllAggregatorsFailed: If every polled client failed
        """
        candidates = self.candidates_for(request.chain)
        if not candidates:
            logger.warning(f"No aggregators support chain {request.chain}")
            raise NoAggregatorsForChain(request.chain)

        logger.info(
            f"Polling {len(candidates)} aggregator(s) for {request.sell_amount} "
            f"{request.sell_token} -> {request.buy_token} on {request.chain}"
        )

        results = await asyncio.gather(
            *(client.get_quote(request) for client in candidates),
            return_exceptions=True,
        )

        quotes: list[Quote] = []
        errors: dict[str, str] = {}
        for client, result in zip(candidates, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                error_msg = f"{type(result).__name__}: {result}"
                logger.warning(f"{client.name} quote failed: {error_msg}")
                errors[client.name] = error_msg
                continue
            quotes.append(result)

        if not quotes:
            logger.error(
                f"No quotes available for {request.sell_token}->{request.buy_token} "
                f"on {request.chain}. Errors: {errors}"
            )
            raise AllAggregatorsFailed(errors)

        # max() returns the first maximal element, so ties keep aggregator order
        best = max(quotes, key=lambda q: q.buy_amount_units)
        logger.info(
            f"Got {len(quotes)}/{len(candidates)} quote(s). "
            f"Best: {best.aggregator_id} ({best.buy_amount})"
        )

        return QuoteSelection(
            best_quote=best,
            all_successful_quotes=tuple(quotes),
            poll_count=len(candidates),
        )
