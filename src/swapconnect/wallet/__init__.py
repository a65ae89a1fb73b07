"""Wallet connection sessions: relay (EVM) and Phantom deep-link (Solana) flows."""

from swapconnect.wallet.orchestrator import RelayConnectionOrchestrator
from swapconnect.wallet.phantom import PhantomCallback, PhantomOrchestrator, SwapResult
from swapconnect.wallet.relay import ApprovedSession, Namespace, Pairing, RelayClient
from swapconnect.wallet.session import (
    ProtocolState,
    Session,
    SessionHandle,
    SwapIntent,
)
from swapconnect.wallet.store import SessionStore

__all__ = [
    "ApprovedSession",
    "Namespace",
    "Pairing",
    "PhantomCallback",
    "PhantomOrchestrator",
    "ProtocolState",
    "RelayClient",
    "RelayConnectionOrchestrator",
    "Session",
    "SessionHandle",
    "SessionStore",
    "SwapIntent",
    "SwapResult",
]
