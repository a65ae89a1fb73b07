"""Swap session model and protocol state machine."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from nacl.public import PrivateKey

from swapconnect.errors import InvalidStateTransition
from swapconnect.routing.base import SwapRequest

logger = logging.getLogger(__name__)


class ProtocolState(str, Enum):
    """Wallet protocol states. Sessions only move forward."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SIGNING_REQUESTED = "signing_requested"
    COMPLETED = "completed"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProtocolState.COMPLETED, ProtocolState.EXPIRED, ProtocolState.FAILED)

    @property
    def order(self) -> int:
        return _STATE_ORDER[self]


_STATE_ORDER = {
    ProtocolState.PENDING_APPROVAL: 0,
    ProtocolState.APPROVED: 1,
    ProtocolState.SIGNING_REQUESTED: 2,
    ProtocolState.COMPLETED: 3,
    ProtocolState.EXPIRED: 3,
    ProtocolState.FAILED: 3,
}


@dataclass(frozen=True)
class SwapIntent:
    """What the user wants to swap and through which aggregator."""

    chain: str
    aggregator_id: str
    sell_token: str
    buy_token: str
    sell_amount: str  # base units
    sell_decimals: int
    buy_decimals: int
    slippage_bps: int

    def to_swap_request(self, wallet_address: str) -> SwapRequest:
        return SwapRequest(
            chain=self.chain,
            sell_token=self.sell_token,
            buy_token=self.buy_token,
            sell_amount=self.sell_amount,
            sell_decimals=self.sell_decimals,
            buy_decimals=self.buy_decimals,
            wallet_address=wallet_address,
            slippage_bps=self.slippage_bps,
        )


@dataclass
class PhantomState:
    """Per-session deep-link handshake material.

    Lives in process memory only. Secret fields are excluded from repr.
    """

    dapp_keypair: Optional[PrivateKey] = field(default=None, repr=False)
    dapp_public_key: str = ""  # base58
    shared_secret: Optional[bytes] = field(default=None, repr=False)
    wallet_encryption_public_key: Optional[str] = None
    wallet_session: Optional[str] = field(default=None, repr=False)
    wallet_address: Optional[str] = None
    last_valid_block_height: Optional[int] = None
    connect_url: str = ""

    def destroy(self) -> None:
        """Drop key material so it cannot be reused."""
        self.dapp_keypair = None
        self.shared_secret = None
        self.wallet_session = None


@dataclass
class Session:
    """A single connect-and-sign flow, owned by the SessionStore."""

    user_id: str
    intent: SwapIntent
    created_at: float
    expires_at: float
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    uri: str = ""
    protocol_state: ProtocolState = ProtocolState.PENDING_APPROVAL
    wallet_address: Optional[str] = None

    # Relay path
    approval: Any = field(default=None, repr=False)
    topic: Optional[str] = None

    # Deep-link path
    phantom: Optional[PhantomState] = None

    transaction_hash: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def chain(self) -> str:
        return self.intent.chain

    def transition(self, new_state: ProtocolState) -> None:
        """Move the protocol forward.

        Raises:
            InvalidStateTransition: From a terminal state, or if the move
                would go backwards
        """
        current = self.protocol_state
        if current.is_terminal:
            raise InvalidStateTransition(
                f"Session {self.session_id} is already {current.value}"
            )
        if new_state.order <= current.order:
            raise InvalidStateTransition(
                f"Session {self.session_id} cannot move from {current.value} to {new_state.value}"
            )

        logger.debug(f"Session {self.session_id}: {current.value} -> {new_state.value}")
        self.protocol_state = new_state

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def destroy_secrets(self) -> None:
        if self.phantom is not None:
            self.phantom.destroy()

    def public(self) -> "SessionHandle":
        return SessionHandle(
            session_id=self.session_id,
            uri=self.uri,
            expires_at=datetime.fromtimestamp(self.expires_at, tz=timezone.utc),
        )


@dataclass(frozen=True)
class SessionHandle:
    """Public view of a freshly opened session."""

    session_id: str
    uri: str
    expires_at: datetime
