"""Application wiring."""

import logging
from typing import Optional

from swapconnect.broadcast import BroadcastCapability, SolanaRpcBroadcaster
from swapconnect.config import Settings, get_settings
from swapconnect.metrics import MetricsRecorder
from swapconnect.notifications.telegram import TelegramNotifier
from swapconnect.routing.base import AggregatorClient
from swapconnect.routing.factory import create_aggregator_clients
from swapconnect.routing.selector import QuoteSelector
from swapconnect.services.quote_service import QuoteService
from swapconnect.services.swap_service import SwapService
from swapconnect.tokens import TokenResolver
from swapconnect.wallet.orchestrator import RelayConnectionOrchestrator
from swapconnect.wallet.phantom import PhantomOrchestrator
from swapconnect.wallet.relay import RelayClient
from swapconnect.wallet.store import SessionStore

logger = logging.getLogger(__name__)


def create_swap_service(
    settings: Optional[Settings] = None,
    relay: Optional[RelayClient] = None,
    clients: Optional[list[AggregatorClient]] = None,
    notifier=None,
    metrics: Optional[MetricsRecorder] = None,
    broadcaster: Optional[BroadcastCapability] = None,
    store: Optional[SessionStore] = None,
) -> SwapService:
    """Build a SwapService with its collaborators.

    Args:
        settings: Settings (defaults to the cached environment settings)
        relay: Relay wallet client; EVM sessions need one
        clients: Aggregator clients (defaults to every configured backend)
        notifier: Notification sink (defaults to the Telegram notifier)
        metrics: Metrics recorder (defaults to a new recorder)
        broadcaster: Solana broadcaster (defaults to JSON-RPC)
        store: Session store (defaults to a new in-memory store)
    """
    settings = settings or get_settings()
    metrics = metrics or MetricsRecorder(enabled=settings.metrics_enabled)
    clients = clients if clients is not None else create_aggregator_clients(settings, metrics)
    notifier = notifier or TelegramNotifier()
    broadcaster = broadcaster or SolanaRpcBroadcaster(
        rpc_url=settings.solana_rpc_url, metrics=metrics
    )
    store = store or SessionStore()

    if relay is None:
        logger.warning("No relay client supplied - EVM swap sessions are disabled")

    quote_service = QuoteService(
        QuoteSelector(clients), TokenResolver(), metrics, cache_ttl=settings.cache_ttl_price
    )
    relay_orchestrator = RelayConnectionOrchestrator(
        relay, store, clients, notifier, metrics, settings
    )
    phantom_orchestrator = PhantomOrchestrator(
        store, clients, broadcaster, notifier, metrics, settings
    )

    return SwapService(
        quote_service=quote_service,
        store=store,
        relay=relay_orchestrator,
        phantom=phantom_orchestrator,
        settings=settings,
    )
