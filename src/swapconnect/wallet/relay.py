"""Relay (WalletConnect v2 style) client interface and response normalization.

The relay transport itself is supplied by the host application; this
module defines the capability the orchestrator drives and normalizes
what wallets send back.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Optional

from swapconnect.chains import ChainConfig
from swapconnect.errors import InvalidWalletResponse
from swapconnect.routing.base import EvmTransaction

logger = logging.getLogger(__name__)

PAIRING_KEY_SIZE_BYTES = 32
TRANSACTION_HASH_FIELDS = ("hash", "txHash", "transactionHash", "signature")


@dataclass(frozen=True)
class Namespace:
    """Required capability set for one chain namespace."""

    chains: tuple[str, ...]
    methods: tuple[str, ...]
    events: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "chains": list(self.chains),
            "methods": list(self.methods),
            "events": list(self.events),
        }


@dataclass(frozen=True)
class ApprovedSession:
    """What the wallet grants on approval."""

    topic: str
    accounts: tuple[str, ...] = ()


@dataclass
class Pairing:
    """A pairing URI plus the pending approval handle."""

    uri: str
    approval: Awaitable[ApprovedSession] = field(repr=False)


class RelayClient(ABC):
    """Relay wallet capability supplied by the host."""

    @abstractmethod
    async def open_pairing(self, required_namespaces: dict[str, Namespace]) -> Pairing:
        """Create a pairing and return its URI plus the approval handle."""
        pass

    @abstractmethod
    async def request(self, topic: str, chain_id: str, method: str, params: list) -> Any:
        """Send a JSON-RPC request to the wallet and return its result."""
        pass


def build_pairing_uri(project_id: str, topic: Optional[str] = None) -> str:
    """Build a WalletConnect v2 pairing URI with a fresh symmetric key."""
    topic = topic or secrets.token_hex(PAIRING_KEY_SIZE_BYTES)
    sym_key = secrets.token_hex(PAIRING_KEY_SIZE_BYTES)
    return f"wc:{topic}@2?relay-protocol=irn&symKey={sym_key}&projectId={project_id}"


def build_required_namespaces(chain: ChainConfig) -> dict[str, Namespace]:
    return {
        chain.namespace: Namespace(
            chains=(chain.caip_chain_id,),
            methods=chain.methods,
            events=chain.events,
        )
    }


def extract_wallet_address(accounts: Any, caip_chain_id: str) -> str:
    """Get the wallet address from approved CAIP-10 accounts.

    Accounts look like "eip155:1:0xabc...". The account for the requested
    chain wins; otherwise the first account in the same namespace is used.

    Raises:
        InvalidWalletResponse: If no usable account was approved
    """
    if not accounts or isinstance(accounts, str):
        raise InvalidWalletResponse("Wallet approved no accounts")

    account_list = [a for a in accounts if isinstance(a, str) and a]
    if not account_list:
        raise InvalidWalletResponse("Wallet approved no accounts")

    prefix = f"{caip_chain_id}:"
    namespace = caip_chain_id.split(":", 1)[0]
    same_namespace = [a for a in account_list if a.startswith(f"{namespace}:")]
    if not same_namespace:
        raise InvalidWalletResponse(f"Wallet approved no {namespace} accounts")

    chosen = next((a for a in same_namespace if a.startswith(prefix)), same_namespace[0])

    address = chosen.rsplit(":", 1)[-1]
    if not address:
        raise InvalidWalletResponse(f"Malformed wallet account: {chosen}")
    return address


def extract_transaction_hash(result: Any) -> str:
    """Normalize a wallet's signing result into a transaction hash.

    Accepts a bare non-empty string, or a mapping carrying one of
    hash/txHash/transactionHash/signature as a non-empty string.

    Raises:
        InvalidWalletResponse: For any other shape
    """
    if isinstance(result, str):
        if result.strip():
            return result.strip()
        raise InvalidWalletResponse("Wallet returned an empty transaction hash")

    if isinstance(result, dict):
        for key in TRANSACTION_HASH_FIELDS:
            value = result.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

    logger.warning(f"Unrecognized wallet result type: {type(result).__name__}")
    raise InvalidWalletResponse("Wallet returned an unrecognized result")


def build_send_params(transaction: EvmTransaction, wallet_address: str) -> list[dict]:
    """Params for eth_sendTransaction. Value is hex-encoded wei."""
    value = transaction.value or "0"
    if not value.startswith("0x"):
        value = hex(int(value))

    return [
        {
            "from": wallet_address,
            "to": transaction.to,
            "data": transaction.data,
            "value": value,
        }
    ]
