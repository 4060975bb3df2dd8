"""Metrics collector — Prometheus counters, gauges, histograms.

Exported series:

- ``soltax_classified_transactions_total{type}``
- ``soltax_dropped_envelopes_total{reason}``
- ``soltax_payment_requests_total{status}``
- ``soltax_fetch_transactions_histogram``
- ``soltax_check_payment_histogram``
- ``soltax_price_table_gauge{symbol}``
- ``soltax_cron_histogram{job_name}``
- ``soltax_cron_last_execution_gauge{job_name}``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from contextlib import AbstractContextManager
    from decimal import Decimal

_PREFIX = "soltax"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level tax engine metrics. Histograms record seconds."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._classified = self._collector.counter(
            f"{_PREFIX}_classified_transactions",
            "Transactions classified, by category",
            ("type",),
        )
        self._dropped = self._collector.counter(
            f"{_PREFIX}_dropped_envelopes",
            "Envelopes skipped during a fetch, by reason",
            ("reason",),
        )
        self._payments = self._collector.counter(
            f"{_PREFIX}_payment_requests",
            "Payment request transitions, by resulting status",
            ("status",),
        )
        self._prices = self._collector.gauge(
            f"{_PREFIX}_price_table_gauge",
            "Current USD price per token symbol",
            ("symbol",),
        )

        self._fetch_tx = self._collector.histogram(
            f"{_PREFIX}_fetch_transactions_histogram",
            "Duration of wallet transaction fetches",
        )
        self._check_payment = self._collector.histogram(
            f"{_PREFIX}_check_payment_histogram",
            "Duration of on-chain payment checks",
        )

        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Counters and gauges --

    def record_classified(self, tx_type: str) -> None:
        self._classified.labels(type=tx_type).inc()

    def record_dropped(self, reason: str) -> None:
        self._dropped.labels(reason=reason).inc()

    def record_payment(self, status: str) -> None:
        self._payments.labels(status=status).inc()

    def set_prices(self, prices: Mapping[str, Decimal]) -> None:
        """Mirror the price table into the per-symbol gauge."""
        for symbol, price in prices.items():
            self._prices.labels(symbol=symbol).set(float(price))

    # -- Operation trackers (context managers) --

    def track_fetch_transactions(self) -> AbstractContextManager[None]:
        return _timed(self._fetch_tx)

    def track_check_payment(self) -> AbstractContextManager[None]:
        return _timed(self._check_payment)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Time one cron run and stamp its completion, successful or not."""
        try:
            with _timed(self._cron_histogram.labels(job_name=job_name)):
                yield
        finally:
            self._cron_last.labels(job_name=job_name).set(time.time())


@contextmanager
def _timed(histogram: Histogram) -> Iterator[None]:
    """Observe the wall time of the managed block in seconds."""
    start = time.monotonic()
    try:
        yield
    finally:
        histogram.observe(time.monotonic() - start)
