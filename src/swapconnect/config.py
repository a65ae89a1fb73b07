"""Application configuration using pydantic-settings.

Covers the aggregator backends, wallet connection flows and the
notification/metrics sinks.
"""

import math
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SWAP_TIMEOUT_SECONDS = 300
MIN_SWAP_TIMEOUT_SECONDS = 1
DEFAULT_SWAP_SLIPPAGE = 0.5
DEFAULT_CACHE_TTL_PRICE = 30


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # Wallet connection
    # ======================
    app_public_url: str = Field(
        default="https://example.org",
        description="Public base URL used for Phantom redirect links",
    )
    wc_project_id: str = Field(default="", description="WalletConnect project ID")
    swap_timeout_seconds: int = Field(
        default=DEFAULT_SWAP_TIMEOUT_SECONDS,
        description="Lifetime of a swap session in seconds",
    )
    swap_slippage: float = Field(
        default=DEFAULT_SWAP_SLIPPAGE,
        description="Slippage tolerance in percent (0.5 = 0.5%)",
    )
    session_sweep_interval_seconds: float = Field(
        default=60.0,
        description="Interval of the expired-session sweep (0 = disabled)",
    )

    # ======================
    # Aggregators
    # ======================
    aggregator_timeout_seconds: float = Field(
        default=10.0, description="Deadline for a single aggregator HTTP call"
    )
    cache_ttl_price: int = Field(
        default=DEFAULT_CACHE_TTL_PRICE,
        description="Seconds a price response is served from cache",
    )
    zero_x_api_key: str = Field(default="", description="0x API key")
    zero_x_api_base_url: str = Field(default="https://api.0x.org", description="0x API URL")
    zero_x_taker_address: str = Field(
        default="0x0000000000000000000000000000000000010000",
        description="Placeholder taker used for 0x price quotes",
    )
    paraswap_api_base_url: str = Field(
        default="https://api.paraswap.io", description="ParaSwap API URL"
    )
    odos_api_base_url: str = Field(default="https://api.odos.xyz", description="Odos API URL")
    odos_api_key: str = Field(default="", description="Odos API key")
    jupiter_api_base_url: str = Field(
        default="https://lite-api.jup.ag", description="Jupiter API URL"
    )
    jupiter_api_key: str = Field(default="", description="Jupiter API key")

    # ======================
    # Chain RPC / explorers
    # ======================
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )
    explorer_url_ethereum: str = Field(default="https://etherscan.io/tx/")
    explorer_url_arbitrum: str = Field(default="https://arbiscan.io/tx/")
    explorer_url_base: str = Field(default="https://basescan.org/tx/")
    explorer_url_optimism: str = Field(default="https://optimistic.etherscan.io/tx/")
    explorer_url_solana: str = Field(default="https://solscan.io/tx/")

    # ======================
    # Metrics
    # ======================
    metrics_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    @field_validator("swap_timeout_seconds", mode="before")
    @classmethod
    def fallback_timeout(cls, v) -> int:
        """Fall back to the default lifetime for unusable values."""
        try:
            parsed = int(v)
        except (TypeError, ValueError):
            return DEFAULT_SWAP_TIMEOUT_SECONDS
        if parsed < MIN_SWAP_TIMEOUT_SECONDS:
            return DEFAULT_SWAP_TIMEOUT_SECONDS
        return parsed

    @field_validator("cache_ttl_price", mode="before")
    @classmethod
    def fallback_cache_ttl(cls, v) -> int:
        try:
            parsed = int(v)
        except (TypeError, ValueError):
            return DEFAULT_CACHE_TTL_PRICE
        return parsed if parsed >= 1 else DEFAULT_CACHE_TTL_PRICE

    @field_validator("swap_slippage", mode="before")
    @classmethod
    def fallback_slippage(cls, v) -> float:
        """Fall back to the default slippage for non-positive values."""
        try:
            parsed = float(v)
        except (TypeError, ValueError):
            return DEFAULT_SWAP_SLIPPAGE
        if not math.isfinite(parsed) or parsed <= 0:
            return DEFAULT_SWAP_SLIPPAGE
        return parsed

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def slippage_bps(self) -> int:
        """Slippage tolerance in basis points (at least 1)."""
        return max(round(self.swap_slippage * 100), 1)

    @property
    def has_walletconnect(self) -> bool:
        return bool(self.wc_project_id.strip())

    def get_explorer_url(self, chain: str) -> Optional[str]:
        """Get the transaction explorer prefix for a chain."""
        explorer_map = {
            "ethereum": self.explorer_url_ethereum,
            "arbitrum": self.explorer_url_arbitrum,
            "base": self.explorer_url_base,
            "optimism": self.explorer_url_optimism,
            "solana": self.explorer_url_solana,
        }
        return explorer_map.get(chain.lower()) or None

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "app_public_url": self.app_public_url,
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "wc_project_id": "***" if self.wc_project_id else "(not set)",
            "swap": {
                "timeout_seconds": self.swap_timeout_seconds,
                "slippage_percent": self.swap_slippage,
            },
            "aggregators": {
                "0x": {
                    "url": self.zero_x_api_base_url,
                    "api_key": "***" if self.zero_x_api_key else "(not set)",
                },
                "paraswap": {"url": self.paraswap_api_base_url},
                "odos": {
                    "url": self.odos_api_base_url,
                    "api_key": "***" if self.odos_api_key else "(not set)",
                },
                "jupiter": {
                    "url": self.jupiter_api_base_url,
                    "api_key": "***" if self.jupiter_api_key else "(not set)",
                },
                "timeout_seconds": self.aggregator_timeout_seconds,
                "price_cache_ttl_seconds": self.cache_ttl_price,
            },
            "solana_rpc": self.solana_rpc_url,
            "metrics_enabled": self.metrics_enabled,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
