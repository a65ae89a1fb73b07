"""Swap service facade: the operations transport layers call.

Sessions are routed to the relay or the deep-link orchestrator by the
chain's connection flow.
"""

import logging
from typing import Any, Mapping, Optional, Union

from swapconnect.chains import ConnectionFlow, get_chain
from swapconnect.config import Settings, get_settings
from swapconnect.errors import InvalidSwapRequest
from swapconnect.routing.base import QuoteRequest
from swapconnect.routing.selector import QuoteSelection
from swapconnect.services.contracts import (
    PriceRequest,
    PriceResponse,
    SwapCommand,
    SwapSessionResponse,
)
from swapconnect.services.quote_service import QuoteService
from swapconnect.wallet.orchestrator import RelayConnectionOrchestrator
from swapconnect.wallet.phantom import PhantomCallback, PhantomOrchestrator, SwapResult
from swapconnect.wallet.session import SessionHandle, SwapIntent
from swapconnect.wallet.store import SessionStore

logger = logging.getLogger(__name__)

CallbackParams = Union[PhantomCallback, Mapping[str, Any]]


class SwapService:
    """Entry point for quotes and wallet swap sessions."""

    def __init__(
        self,
        quote_service: QuoteService,
        store: SessionStore,
        relay: RelayConnectionOrchestrator,
        phantom: PhantomOrchestrator,
        settings: Optional[Settings] = None,
    ):
        self.quote_service = quote_service
        self.store = store
        self.relay = relay
        self.phantom = phantom
        self.settings = settings or get_settings()

    async def get_quote_selection(self, request: QuoteRequest) -> QuoteSelection:
        """Best quote across every aggregator serving the chain."""
        return await self.quote_service.selector.select_best(request)

    async def get_price(self, request: PriceRequest) -> PriceResponse:
        return await self.quote_service.get_price(request)

    def _orchestrator_for(
        self, chain: str
    ) -> Union[RelayConnectionOrchestrator, PhantomOrchestrator]:
        flow = get_chain(chain).connection_flow
        if flow == ConnectionFlow.RELAY:
            return self.relay
        if flow == ConnectionFlow.DEEP_LINK:
            return self.phantom
        raise InvalidSwapRequest(f"Chain {chain} has no wallet connection flow")

    async def open_session(self, user_id: str, intent: SwapIntent) -> SessionHandle:
        """Open a wallet session for an intent bound to one aggregator."""
        return await self._orchestrator_for(intent.chain).open_session(user_id, intent)

    async def create_swap_session(self, command: SwapCommand) -> SwapSessionResponse:
        """Price the swap, then open a session bound to the best aggregator.

        Raises:
            InvalidSwapRequest: For bad input
            NoAggregatorsForChain: If nothing quotes the chain
            AllAggregatorsFailed: If no aggregator produced a quote
            ConfigurationError: If the relay flow is not configured
        """
        price_request = PriceRequest(
            amount=command.amount,
            from_symbol=command.from_symbol,
            to_symbol=command.to_symbol,
            chain=command.chain,
            user_id=command.user_id,
        )
        prepared = self.quote_service.prepare(price_request)
        selection = await self.quote_service.fetch_selection(prepared)
        best = selection.best_quote

        intent = SwapIntent(
            chain=prepared.chain,
            aggregator_id=best.aggregator_id,
            sell_token=prepared.from_token.address,
            buy_token=prepared.to_token.address,
            sell_amount=prepared.sell_amount_base_units,
            sell_decimals=prepared.from_token.decimals,
            buy_decimals=prepared.to_token.decimals,
            slippage_bps=self.settings.slippage_bps,
        )
        handle = await self.open_session(command.user_id, intent)
        price = self.quote_service.build_response(prepared, selection)

        return SwapSessionResponse(
            **price.model_dump(),
            session_id=handle.session_id,
            wallet_uri=handle.uri,
            expires_at=handle.expires_at,
        )

    def get_connect_deep_link(self, session_id: str) -> str:
        return self.phantom.get_connect_deep_link(session_id)

    async def handle_connect_callback(self, session_id: str, params: CallbackParams) -> str:
        return await self.phantom.handle_connect_callback(session_id, params)

    async def handle_sign_callback(self, session_id: str, params: CallbackParams) -> SwapResult:
        return await self.phantom.handle_sign_callback(session_id, params)

    def start(self) -> None:
        """Start background housekeeping (requires a running loop)."""
        self.store.start_sweeper(self.settings.session_sweep_interval_seconds)

    async def aclose(self) -> None:
        await self.relay.aclose()
        await self.store.stop_sweeper()
        logger.info("Swap service stopped")
