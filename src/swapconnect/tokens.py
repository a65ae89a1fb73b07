"""Static token lists per chain.

Resolves a user-facing symbol (e.g. "USDC") to the token address and
decimals aggregators expect.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from swapconnect.chains import chain_supports_address, get_chain
from swapconnect.errors import InvalidSwapRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    address: str
    decimals: int
    chain: str


# Token addresses by chain (mainnet): symbol -> (address, decimals)
TOKENS: dict[str, dict[str, tuple[str, int]]] = {
    "ethereum": {
        "ETH": ("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE", 18),
        "USDC": ("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
        "USDT": ("0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
        "WETH": ("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18),
        "WBTC": ("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8),
        "DAI": ("0x6B175474E89094C44Da98b954EedeAC495271d0F", 18),
        "UNI": ("0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984", 18),
        "LINK": ("0x514910771AF9Ca656af840dff83E8264EcF986CA", 18),
        "AAVE": ("0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9", 18),
        "LDO": ("0x5A98FcBEA516Cf06857215779Fd812CA3beF1B32", 18),
    },
    "arbitrum": {
        "ETH": ("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE", 18),
        "USDC": ("0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6),
        "USDT": ("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6),
        "WETH": ("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18),
        "WBTC": ("0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f", 8),
        "DAI": ("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", 18),
    },
    "base": {
        "ETH": ("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE", 18),
        "USDC": ("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6),
        "WETH": ("0x4200000000000000000000000000000000000006", 18),
        "DAI": ("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", 18),
    },
    "optimism": {
        "ETH": ("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE", 18),
        "USDC": ("0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85", 6),
        "USDT": ("0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", 6),
        "WETH": ("0x4200000000000000000000000000000000000006", 18),
        "WBTC": ("0x68f180fcCe6836688e9084f035309E29Bf0A2095", 8),
        "DAI": ("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", 18),
    },
    "solana": {
        "SOL": ("So11111111111111111111111111111111111111112", 9),
        "USDC": ("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6),
        "USDT": ("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", 6),
        "JUP": ("JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6),
        "BONK": ("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", 5),
    },
}


class TokenResolver:
    """Resolves token symbols to addresses and decimals."""

    def __init__(self, tokens: Optional[dict[str, dict[str, tuple[str, int]]]] = None):
        self._tokens = tokens if tokens is not None else TOKENS

    def resolve_token(self, symbol: str, chain: str) -> TokenInfo:
        """Get token info by symbol.

        Raises:
            InvalidSwapRequest: If the chain or token is unknown, or the
                configured address is malformed for the chain
        """
        chain_config = get_chain(chain)
        entry = self._tokens.get(chain_config.name, {}).get(symbol.upper())

        if entry is None:
            supported = ", ".join(self.supported_symbols(chain_config.name))
            raise InvalidSwapRequest(
                f"Token {symbol.upper()} is not supported on {chain_config.name}. "
                f"Supported: {supported}"
            )

        address, decimals = entry
        if not chain_supports_address(chain_config.name, address):
            logger.error(f"Configured address for {symbol} on {chain} is invalid: {address}")
            raise InvalidSwapRequest(f"Invalid token address: {address}")

        return TokenInfo(
            symbol=symbol.upper(),
            address=address,
            decimals=decimals,
            chain=chain_config.name,
        )

    def supported_symbols(self, chain: str) -> list[str]:
        return list(self._tokens.get(chain.lower(), {}).keys())
