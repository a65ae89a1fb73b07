"""Prometheus metrics for quotes, swaps and external requests.

Recording is best-effort: a failing metric call is logged and dropped, it
never changes the outcome of the operation being measured.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

logger = logging.getLogger(__name__)

REQUEST_DURATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1, 2, 5)


class MetricsRecorder:
    """Collects service metrics on a private registry."""

    def __init__(self, enabled: bool = True, registry: Optional[CollectorRegistry] = None):
        self.enabled = enabled
        self.registry = registry or CollectorRegistry()

        self.price_requests = Counter(
            "price_requests_total",
            "Total number of price lookups",
            ["status"],
            registry=self.registry,
        )
        self.swap_requests = Counter(
            "swap_requests_total",
            "Swap sessions by outcome",
            ["status"],  # initiated, success, error
            registry=self.registry,
        )
        self.errors = Counter(
            "errors_total",
            "Total errors by type",
            ["type"],
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests_total",
            "External API requests",
            ["provider", "method", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "External API request duration",
            ["provider", "method", "status_code"],
            buckets=REQUEST_DURATION_BUCKETS,
            registry=self.registry,
        )

    def observe_external_request(
        self,
        provider: str,
        method: str,
        status_code: str,
        duration_seconds: float,
    ) -> None:
        """Record one outbound request (latency, backend, outcome)."""
        if not self.enabled:
            return
        try:
            self.http_requests.labels(provider, method, status_code).inc()
            self.http_request_duration.labels(provider, method, status_code).observe(
                duration_seconds
            )
        except Exception as e:
            logger.debug(f"Failed to record request metric for {provider}: {e}")

    def increment_price_request(self, status: str) -> None:
        self._inc(self.price_requests, status)

    def increment_swap_request(self, status: str) -> None:
        self._inc(self.swap_requests, status)

    def increment_error(self, error_type: str) -> None:
        self._inc(self.errors, error_type)

    def _inc(self, counter: Counter, label: str) -> None:
        if not self.enabled:
            return
        try:
            counter.labels(label).inc()
        except Exception as e:
            logger.debug(f"Failed to record metric {label}: {e}")

    def render(self) -> bytes:
        """Render metrics in Prometheus text exposition format."""
        if not self.enabled:
            return b"# metrics are disabled\n"
        return generate_latest(self.registry)
