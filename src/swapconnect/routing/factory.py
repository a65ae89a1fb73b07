"""Factory for creating aggregator clients from settings."""

import logging
from typing import Optional

from swapconnect.config import Settings, get_settings
from swapconnect.metrics import MetricsRecorder
from swapconnect.routing.base import AggregatorClient
from swapconnect.routing.jupiter import JupiterClient
from swapconnect.routing.odos import OdosClient
from swapconnect.routing.paraswap import ParaSwapClient
from swapconnect.routing.zerox import ZeroXClient

logger = logging.getLogger(__name__)


def create_zero_x_client(settings: Settings, metrics=None, **kwargs) -> ZeroXClient:
    """Create 0x client.

    0x works without a key at low rate limits, so the key is optional.
    """
    if not settings.zero_x_api_key:
        logger.info("ZERO_X_API_KEY not set, 0x requests are unauthenticated")
    return ZeroXClient(
        api_key=settings.zero_x_api_key,
        base_url=settings.zero_x_api_base_url,
        taker_address=settings.zero_x_taker_address,
        metrics=metrics,
        timeout=settings.aggregator_timeout_seconds,
        **kwargs,
    )


def create_paraswap_client(settings: Settings, metrics=None, **kwargs) -> ParaSwapClient:
    return ParaSwapClient(
        base_url=settings.paraswap_api_base_url,
        metrics=metrics,
        timeout=settings.aggregator_timeout_seconds,
        **kwargs,
    )


def create_odos_client(settings: Settings, metrics=None, **kwargs) -> OdosClient:
    return OdosClient(
        api_key=settings.odos_api_key,
        base_url=settings.odos_api_base_url,
        metrics=metrics,
        timeout=settings.aggregator_timeout_seconds,
        **kwargs,
    )


def create_jupiter_client(settings: Settings, metrics=None, **kwargs) -> JupiterClient:
    """Create Jupiter client for Solana."""
    return JupiterClient(
        api_key=settings.jupiter_api_key,
        base_url=settings.jupiter_api_base_url,
        metrics=metrics,
        timeout=settings.aggregator_timeout_seconds,
        **kwargs,
    )


def create_aggregator_clients(
    settings: Optional[Settings] = None,
    metrics: Optional[MetricsRecorder] = None,
    **kwargs,
) -> list[AggregatorClient]:
    """Create every configured aggregator client.

    Order matters: it is the tie-break order for equal quotes.

    Args:
        settings: Settings to read (defaults to the cached settings)
        metrics: Optional metrics recorder shared by all clients
        **kwargs: Passed to every client (e.g. transport for tests)
    """
    settings = settings or get_settings()
    clients: list[AggregatorClient] = [
        create_zero_x_client(settings, metrics, **kwargs),
        create_paraswap_client(settings, metrics, **kwargs),
        create_odos_client(settings, metrics, **kwargs),
        create_jupiter_client(settings, metrics, **kwargs),
    ]
    logger.info(f"Created aggregators: {', '.join(c.name for c in clients)}")
    return clients
