"""Routing module for DEX aggregator quotes.

Aggregators:
- 0x: Ethereum, Arbitrum, Base, Optimism
- ParaSwap: Ethereum, Arbitrum, Base, Optimism
- Odos: Ethereum, Arbitrum, Base, Optimism
- Jupiter: Solana
"""

from swapconnect.routing.base import (
    AggregatorClient,
    EvmTransaction,
    Quote,
    QuoteRequest,
    SolanaTransaction,
    SwapRequest,
    SwapTransaction,
)
from swapconnect.routing.factory import create_aggregator_clients
from swapconnect.routing.jupiter import JupiterClient
from swapconnect.routing.odos import OdosClient
from swapconnect.routing.paraswap import ParaSwapClient
from swapconnect.routing.selector import QuoteSelection, QuoteSelector
from swapconnect.routing.zerox import ZeroXClient

__all__ = [
    "AggregatorClient",
    "EvmTransaction",
    "JupiterClient",
    "OdosClient",
    "ParaSwapClient",
    "Quote",
    "QuoteRequest",
    "QuoteSelection",
    "QuoteSelector",
    "SolanaTransaction",
    "SwapRequest",
    "SwapTransaction",
    "ZeroXClient",
    "create_aggregator_clients",
]
