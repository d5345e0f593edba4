"""Prometheus metrics for the opportunity book service."""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)


class MetricsCollector:
    """Prometheus metrics for reconciliation and feeds.

    Each instance owns its CollectorRegistry, so several collectors can live
    side by side (e.g. one per test).
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        # --- Counters ---
        self.reconciliations = Counter(
            "perpbook_reconciliations_total",
            "Total reconciliation cycles run",
            registry=self._registry,
        )
        self.price_updates = Counter(
            "perpbook_price_updates_total",
            "Price changes that triggered a reconciliation",
            ["symbol"],
            registry=self._registry,
        )
        self.records = Counter(
            "perpbook_records_total",
            "Book records produced, by path",
            ["path"],
            registry=self._registry,
        )
        self.headline_fetches = Counter(
            "perpbook_headline_fetches_total",
            "Narrative source fetches, by outcome",
            ["outcome"],
            registry=self._registry,
        )

        # --- Gauges ---
        self.top_basis = Gauge(
            "perpbook_top_basis_bps",
            "Basis of the top-ranked record in bps",
            registry=self._registry,
        )
        self.aggregate_pnl = Gauge(
            "perpbook_aggregate_pnl",
            "Summed estimated PnL over the book",
            registry=self._registry,
        )
        self.basis = Gauge(
            "perpbook_basis_bps",
            "Current basis per symbol in bps",
            ["symbol"],
            registry=self._registry,
        )
        self.feed_connected = Gauge(
            "perpbook_feed_connected",
            "Whether a feed is connected (0 or 1)",
            ["feed"],
            registry=self._registry,
        )

        # --- Histograms ---
        self.reconcile_latency = Histogram(
            "perpbook_reconcile_seconds",
            "Wall time of one reconciliation cycle",
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05],
            registry=self._registry,
        )

        # --- Info ---
        self.system_info = Info(
            "perpbook_system",
            "perpbook system information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_cycle(
        self,
        symbol: str | None,
        live: int,
        carried: int,
        fallback: int,
        latency_s: float,
    ) -> None:
        """Record one reconciliation cycle.

        Args:
            symbol: Symbol whose price change triggered the cycle, if any.
            live: Records re-derived from a live price.
            carried: Records reused unchanged.
            fallback: Records synthesized as fallback.
            latency_s: Cycle wall time in seconds.
        """
        self.reconciliations.inc()
        if symbol is not None:
            self.price_updates.labels(symbol=symbol).inc()
        self.records.labels(path="live").inc(live)
        self.records.labels(path="carried").inc(carried)
        self.records.labels(path="fallback").inc(fallback)
        self.reconcile_latency.observe(latency_s)

    def update_book(self, basis_by_symbol: dict[str, float], aggregate_pnl: float) -> None:
        """Refresh book gauges after a cycle.

        Args:
            basis_by_symbol: Basis in bps per symbol, in book order.
            aggregate_pnl: Summed estimated PnL.
        """
        for symbol, bps in basis_by_symbol.items():
            self.basis.labels(symbol=symbol).set(bps)
        if basis_by_symbol:
            self.top_basis.set(next(iter(basis_by_symbol.values())))
        self.aggregate_pnl.set(aggregate_pnl)

    def update_connection(self, feed: str, connected: bool) -> None:
        self.feed_connected.labels(feed=feed).set(1.0 if connected else 0.0)

    def record_headline_fetch(self, ok: bool) -> None:
        self.headline_fetches.labels(outcome="ok" if ok else "failed").inc()

    def set_system_info(self, version: str, symbols: list[str], venues: list[str]) -> None:
        self.system_info.info(
            {
                "version": version,
                "symbols": ",".join(symbols),
                "venues": ",".join(venues),
            }
        )

    def start_server(self, port: int = 9108) -> None:
        """Start the HTTP exporter for Prometheus scraping."""
        start_http_server(port, registry=self._registry)
