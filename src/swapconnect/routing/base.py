"""Abstract interface for DEX aggregator backends."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ValidationError

from swapconnect.errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

DEFAULT_AGGREGATOR_TIMEOUT = 10.0


@dataclass(frozen=True)
class QuoteRequest:
    """A caller-supplied price request. Amounts are in base units."""

    chain: str
    sell_token: str
    buy_token: str
    sell_amount: str
    sell_decimals: int
    buy_decimals: int


@dataclass(frozen=True)
class SwapRequest(QuoteRequest):
    """A quote request bound to a wallet, used to build the transaction."""

    wallet_address: str = ""
    slippage_bps: int = 50


@dataclass(frozen=True)
class Quote:
    """A priced offer from one aggregator."""

    aggregator_id: str
    buy_amount: str  # base units, integer string
    estimated_gas_usd: Optional[float] = None
    raw_payload: Any = field(default=None, compare=False, repr=False)
    network_fee_wei: Optional[str] = None

    @property
    def buy_amount_units(self) -> int:
        return int(self.buy_amount)


@dataclass(frozen=True)
class EvmTransaction:
    """An EVM call descriptor ready for eth_sendTransaction."""

    to: str
    data: str
    value: str = "0"
    kind: str = field(default="evm", init=False)


@dataclass(frozen=True)
class SolanaTransaction:
    """An unsigned serialized Solana transaction and its validity bound."""

    serialized_transaction: str  # base64
    last_valid_block_height: Optional[int] = None
    kind: str = field(default="solana", init=False)


SwapTransaction = Union[EvmTransaction, SolanaTransaction]


class AggregatorClient(ABC):
    """Abstract base class for aggregator backends.

    Subclasses describe one backend. The base class owns HTTP plumbing:
    request-scoped timeouts, error mapping and per-call metrics.
    """

    def __init__(
        self,
        metrics=None,
        timeout: float = DEFAULT_AGGREGATOR_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            metrics: Optional MetricsRecorder for request observations
            timeout: Deadline for a single HTTP call in seconds
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.metrics = metrics
        self.timeout = timeout
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """Aggregator identifier (e.g. "0x", "jupiter")."""
        pass

    @property
    @abstractmethod
    def supported_chains(self) -> list[str]:
        pass

    def supports_chain(self, chain: str) -> bool:
        return chain.lower() in self.supported_chains

    @abstractmethod
    async def get_quote(self, request: QuoteRequest) -> Quote:
        """Get a price quote.

        Raises:
            UpstreamTimeout: If the backend missed the deadline
            UpstreamError: On transport failure, bad status or schema mismatch
        """
        pass

    @abstractmethod
    async def build_swap_transaction(self, request: SwapRequest) -> SwapTransaction:
        """Build the on-chain transaction for the wallet to sign.

        Raises:
            UpstreamTimeout: If the backend missed the deadline
            UpstreamError: On transport failure, bad status or schema mismatch
        """
        pass

    async def health_check(self) -> bool:
        """Check if the backend answers. Never raises."""
        return True

    def _headers(self) -> dict:
        return {"Accept": "application/json"}

    async def _request_json(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """Issue one HTTP call and return the decoded JSON body.

        Records exactly one metrics observation per call.

        Raises:
            UpstreamTimeout: On httpx timeouts
            UpstreamError: On other transport failures, non-2xx status or
                a body that is not JSON
        """
        status_code = "error"
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers or self._headers(),
                )
            status_code = str(response.status_code)

            if not response.is_success:
                logger.warning(
                    f"{self.name} API error: {response.status_code} - {response.text[:200]}"
                )
                raise UpstreamError(f"{self.name} returned HTTP {response.status_code}")

            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(f"{self.name} returned a non-JSON body") from e

        except httpx.TimeoutException as e:
            status_code = "timeout"
            logger.warning(f"{self.name} request timed out after {self.timeout}s: {url}")
            raise UpstreamTimeout(f"{self.name} request timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"{self.name} request failed: {e}")
            raise UpstreamError(f"{self.name} request failed: {e}") from e
        finally:
            self._observe(method, status_code, time.monotonic() - started)

    def _observe(self, method: str, status_code: str, duration: float) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.observe_external_request(self.name, method, status_code, duration)
        except Exception as e:
            logger.debug(f"Metrics observation failed for {self.name}: {e}")

    def _parse(self, model: type[BaseModel], body: Any, label: str) -> BaseModel:
        """Validate a response body against a pydantic model.

        Raises:
            UpstreamError: If the body does not match the model
        """
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.warning(f"{self.name} {label} schema mismatch: {e.error_count()} errors")
            raise UpstreamError(f"{self.name} {label} response schema is invalid") from e

    def _require_amount(self, amount: Any, label: str = "buy amount") -> str:
        """Check a base-unit amount is a positive integer string."""
        text = str(amount).strip()
        if not text.isdigit() or int(text) == 0:
            raise UpstreamError(f"{self.name} returned no {label} (insufficient liquidity)")
        return text
