"""Book service: owns the state and runs reconciliation on price changes.

Every change of a tracked price triggers one synchronous reconciliation
over a snapshot of all latest prices. A cycle always runs to completion
before the next event is handled, so no locking is involved.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from datetime import datetime

from perpbook.core.dispatcher import PriceDispatcher
from perpbook.core.state import BookState, BookView
from perpbook.engine.reconciler import BookReconciler
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import Universe
from perpbook.engine.views import aggregate_pnl
from perpbook.logging import get_logger
from perpbook.models.filters import FilterSettings
from perpbook.models.news import NarrativeItem
from perpbook.monitoring.metrics import MetricsCollector

StateListener = Callable[[BookState], None]


class BookService:
    """Drives the opportunity book from incoming prices and headlines.

    Args:
        universe: Validated symbol universe.
        generator: Synthetic generator; also seeds the startup book.
        reconciler: Reconciler built over the same universe. Created from
            ``generator`` when omitted.
        dispatcher: Price map. Created over the universe when omitted.
        filters: Initial filter settings.
        metrics: Optional Prometheus collector.
        clock: Returns the local time of a cycle.
    """

    def __init__(
        self,
        universe: Universe,
        generator: SyntheticGenerator,
        reconciler: BookReconciler | None = None,
        dispatcher: PriceDispatcher | None = None,
        filters: FilterSettings | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.universe = universe
        self.reconciler = reconciler or BookReconciler(universe, generator)
        self.dispatcher = dispatcher or PriceDispatcher(universe.symbols)
        self.metrics = metrics
        self._clock = clock
        self._listeners: list[StateListener] = []
        self._logger = get_logger("book_service")

        self._state = BookState(
            book=tuple(generator.seed_book()),
            filters=filters or FilterSettings(),
        )
        self.dispatcher.subscribe(self._on_price_change)

        self._logger.info(
            "book_seeded",
            symbols=len(universe),
            venues=[v.value for v in universe.venues],
        )

    @property
    def state(self) -> BookState:
        return self._state

    def on_state_change(self, listener: StateListener) -> None:
        """Register a listener called with the new state after each change."""
        self._listeners.append(listener)

    def handle_price(self, symbol: str, price: float) -> None:
        """Feed callback: record a price and reconcile if it changed."""
        self.dispatcher.publish(symbol, price)

    def refresh(self, trigger: str | None = None) -> BookState:
        """Run one reconciliation over the current price snapshot.

        Args:
            trigger: Symbol whose price change caused the cycle, if any.

        Returns:
            The new state.
        """
        snapshot = self.dispatcher.snapshot()
        previous_top = self._state.book[0].symbol if self._state.book else None

        started = time.perf_counter()
        result = self.reconciler.reconcile(self._state.book, snapshot, self._clock())
        self._state = self._state.apply(result)
        elapsed = time.perf_counter() - started

        top = result.top
        self._logger.debug(
            "book_reconciled",
            trigger=trigger,
            live=len(result.live),
            carried=len(result.carried),
            fallback=len(result.fallback),
            top=top.symbol if top else None,
        )
        if top is not None and top.symbol != previous_top:
            self._logger.info("book_top_changed", line=result.log_line)

        if self.metrics is not None:
            self.metrics.record_cycle(
                trigger,
                live=len(result.live),
                carried=len(result.carried),
                fallback=len(result.fallback),
                latency_s=elapsed,
            )
            self.metrics.update_book(
                {o.symbol: o.spread_bps for o in result.book},
                aggregate_pnl(result.book),
            )

        self._notify()
        return self._state

    def set_filters(self, filters: FilterSettings) -> None:
        self._state = self._state.with_filters(filters)
        self._notify()

    def set_headlines(self, headlines: Iterable[NarrativeItem]) -> None:
        self._state = self._state.with_headlines(headlines)
        self._logger.debug("headlines_updated", count=len(self._state.headlines))
        self._notify()

    def view(self) -> BookView:
        return self._state.view(self.universe.venues)

    def _on_price_change(self, symbol: str, price: float) -> None:
        self.refresh(trigger=symbol)

    def _notify(self) -> None:
        for listener in self._listeners:
            try:
                listener(self._state)
            except Exception:
                self._logger.exception("state_listener_error")
