"""Explicit book state and the snapshot view derived from it.

``BookState`` is owned by whoever drives the engine. Each reconciliation
produces a new state via :meth:`BookState.apply`; nothing is mutated in place.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from perpbook.engine.reconciler import ReconcileResult
from perpbook.engine.views import aggregate_pnl, filter_book, top_ideas, venue_counts
from perpbook.models.filters import FilterSettings
from perpbook.models.idea import TradeIdea
from perpbook.models.news import NarrativeItem
from perpbook.models.opportunity import Opportunity, Venue

EVENT_LOG_CAP = 16
TREND_CAP = 32
HEADLINE_CAP = 6


@dataclass(frozen=True)
class BookState:
    """Book, rolling histories, filter settings and headlines.

    Attributes:
        book: Current records, basis descending.
        event_log: Human-readable lines, newest first, at most 16.
        trend: Top-of-book basis samples, oldest first, at most 32.
        filters: Settings for the filtered view.
        headlines: Latest narrative headlines.
        cycles: Number of reconciliations applied.
    """

    book: tuple[Opportunity, ...] = ()
    event_log: tuple[str, ...] = ()
    trend: tuple[float, ...] = ()
    filters: FilterSettings = field(default_factory=FilterSettings)
    headlines: tuple[NarrativeItem, ...] = ()
    cycles: int = 0

    def apply(self, result: ReconcileResult) -> BookState:
        """Return the state after a reconciliation cycle.

        The log line goes to the front of the event log and the trend sample
        to the back of the trend series; both are then trimmed to their caps.
        A result without a log line or sample leaves the histories as they are.
        """
        event_log = self.event_log
        if result.log_line is not None:
            event_log = ((result.log_line,) + event_log)[:EVENT_LOG_CAP]

        trend = self.trend
        if result.trend_sample is not None:
            trend = (trend + (result.trend_sample,))[-TREND_CAP:]

        return replace(
            self,
            book=tuple(result.book),
            event_log=event_log,
            trend=trend,
            cycles=self.cycles + 1,
        )

    def with_filters(self, filters: FilterSettings) -> BookState:
        return replace(self, filters=filters)

    def with_headlines(self, headlines: Iterable[NarrativeItem]) -> BookState:
        return replace(self, headlines=tuple(headlines)[:HEADLINE_CAP])

    def view(self, venues: Iterable[Venue]) -> BookView:
        """Project the state into the read-only view consumed by renderers."""
        filtered = filter_book(
            self.book,
            type=self.filters.type,
            min_edge_bps=self.filters.min_edge_bps,
            min_notional=self.filters.min_notional,
        )
        longs, shorts = top_ideas(self.book)
        return BookView(
            rows=filtered,
            total=len(self.book),
            venue_counts=venue_counts(self.book, venues),
            aggregate_pnl=aggregate_pnl(self.book),
            long_ideas=longs,
            short_ideas=shorts,
            event_log=list(self.event_log),
            trend=list(self.trend),
            headlines=list(self.headlines),
        )


@dataclass(frozen=True)
class BookView:
    """Everything a renderer needs, recomputed from the state on each change.

    Attributes:
        rows: Filtered records in book order.
        total: Size of the unfiltered book.
        venue_counts: Records per venue of their cheapest leg.
        aggregate_pnl: Summed estimated PnL over the whole book.
        long_ideas: Top long ideas.
        short_ideas: Top short ideas.
        event_log: Event log, newest first.
        trend: Trend series, oldest first.
        headlines: Narrative headlines.
    """

    rows: list[Opportunity]
    total: int
    venue_counts: dict[Venue, int]
    aggregate_pnl: float
    long_ideas: list[TradeIdea]
    short_ideas: list[TradeIdea]
    event_log: list[str]
    trend: list[float]
    headlines: list[NarrativeItem]

    @property
    def summary(self) -> str:
        """E.g. "Showing 3 of 10 contracts"."""
        return f"Showing {len(self.rows)} of {self.total} contracts"
