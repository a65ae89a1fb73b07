"""Shared test doubles."""

from typing import Optional

from swapconnect.errors import UpstreamError
from swapconnect.metrics import MetricsRecorder
from swapconnect.routing.base import (
    AggregatorClient,
    EvmTransaction,
    Quote,
    QuoteRequest,
    SwapRequest,
    SwapTransaction,
)

EVM_WALLET = "0x1111111111111111111111111111111111111111"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAggregator(AggregatorClient):
    """In-memory aggregator with a canned quote or error."""

    def __init__(
        self,
        name: str,
        buy_amount: Optional[str] = "1000",
        chains: tuple[str, ...] = ("ethereum",),
        error: Optional[Exception] = None,
        transaction: Optional[SwapTransaction] = None,
        build_error: Optional[Exception] = None,
    ):
        super().__init__()
        self._name = name
        self._chains = list(chains)
        self.buy_amount = buy_amount
        self.error = error
        self.transaction = transaction or EvmTransaction(
            to="0x2222222222222222222222222222222222222222", data="0xdeadbeef", value="0"
        )
        self.build_error = build_error
        self.quote_calls: list[QuoteRequest] = []
        self.build_calls: list[SwapRequest] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def supported_chains(self) -> list[str]:
        return self._chains

    async def get_quote(self, request: QuoteRequest) -> Quote:
        self.quote_calls.append(request)
        if self.error is not None:
            raise self.error
        if self.buy_amount is None:
            raise UpstreamError(f"{self.name} returned no buy amount")
        return Quote(aggregator_id=self.name, buy_amount=self.buy_amount)

    async def build_swap_transaction(self, request: SwapRequest) -> SwapTransaction:
        self.build_calls.append(request)
        if self.build_error is not None:
            raise self.build_error
        return self.transaction


def make_quote_request(chain: str = "ethereum", **overrides) -> QuoteRequest:
    values = {
        "chain": chain,
        "sell_token": USDC,
        "buy_token": USDT,
        "sell_amount": "10000000",
        "sell_decimals": 6,
        "buy_decimals": 6,
    }
    values.update(overrides)
    return QuoteRequest(**values)


def sample_value(metrics: MetricsRecorder, name: str, labels: dict) -> float:
    """Read one sample from the recorder's registry (0 when absent)."""
    value = metrics.registry.get_sample_value(name, labels)
    return value or 0.0
