"""Supported chains and their wallet connection variants.

EVM chains (Ethereum, Arbitrum, Base, Optimism) connect through a
WalletConnect-style relay. Solana connects through Phantom deep links.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

import base58

from swapconnect.errors import InvalidSwapRequest


class ConnectionFlow(str, Enum):
    """How a wallet is connected for a chain."""

    RELAY = "relay"
    DEEP_LINK = "deep_link"


EVM_NAMESPACE = "eip155"
SOLANA_NAMESPACE = "solana"

EVM_METHODS = (
    "eth_sendTransaction",
    "eth_signTransaction",
    "personal_sign",
    "eth_signTypedData",
    "eth_signTypedData_v4",
)
EVM_EVENTS = ("accountsChanged", "chainChanged")

SOLANA_METHODS = (
    "solana_signTransaction",
    "solana_signAndSendTransaction",
    "solana_signMessage",
    "solana_requestAccounts",
)

NATIVE_EVM_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
NATIVE_SOLANA_MINT = "So11111111111111111111111111111111111111112"

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
SOLANA_PUBLIC_KEY_LENGTH = 32


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain."""

    name: str
    display_name: str
    chain_id: Union[int, str]
    namespace: str
    caip_chain_id: str
    connection_flow: ConnectionFlow
    methods: tuple[str, ...]
    events: tuple[str, ...] = ()
    sign_method: str = "eth_sendTransaction"
    native_token: str = NATIVE_EVM_ADDRESS

    @property
    def is_evm(self) -> bool:
        return self.namespace == EVM_NAMESPACE


def _evm_chain(name: str, display_name: str, chain_id: int) -> ChainConfig:
    return ChainConfig(
        name=name,
        display_name=display_name,
        chain_id=chain_id,
        namespace=EVM_NAMESPACE,
        caip_chain_id=f"{EVM_NAMESPACE}:{chain_id}",
        connection_flow=ConnectionFlow.RELAY,
        methods=EVM_METHODS,
        events=EVM_EVENTS,
    )


# ======================
# Chain Configurations
# ======================

CHAINS: dict[str, ChainConfig] = {
    "ethereum": _evm_chain("ethereum", "Ethereum", 1),
    "arbitrum": _evm_chain("arbitrum", "Arbitrum One", 42161),
    "base": _evm_chain("base", "Base", 8453),
    "optimism": _evm_chain("optimism", "Optimism", 10),
    "solana": ChainConfig(
        name="solana",
        display_name="Solana",
        chain_id="solana:mainnet",
        namespace=SOLANA_NAMESPACE,
        caip_chain_id="solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp",
        connection_flow=ConnectionFlow.DEEP_LINK,
        methods=SOLANA_METHODS,
        sign_method="solana_signAndSendTransaction",
        native_token=NATIVE_SOLANA_MINT,
    ),
}

DEFAULT_CHAIN = "ethereum"


def get_chain(chain: str) -> ChainConfig:
    """Get chain configuration by name.

    Raises:
        InvalidSwapRequest: If the chain is not supported
    """
    config = CHAINS.get(chain.lower())
    if config is None:
        raise InvalidSwapRequest(f"Chain {chain} is not supported")
    return config


def get_supported_chains() -> list[str]:
    return list(CHAINS.keys())


def chain_supports_address(chain: str, address: str) -> bool:
    """Check that an address is well-formed for the chain."""
    config = CHAINS.get(chain.lower())
    if config is None or not address:
        return False

    if config.is_evm:
        return bool(_EVM_ADDRESS_RE.match(address))

    try:
        return len(base58.b58decode(address)) == SOLANA_PUBLIC_KEY_LENGTH
    except ValueError:
        return False
