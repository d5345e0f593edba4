"""Opportunity book reconciliation.

Merges the latest per-symbol prices into the previous book. Symbols with a
price get freshly derived PERP records; symbols without one keep their
previous record untouched, or get a synthetic fallback when they never had
one. The result is always one record per universe symbol, sorted by basis.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from perpbook.engine.metrics import derive
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import Universe
from perpbook.models.opportunity import (
    ArbType,
    LegSide,
    Opportunity,
    VenueLeg,
    format_clock,
    split_symbol,
)

FRESH_NOTIONAL_RANGE = (75_000.0, 500_000.0)
LIVE_MARKER = "LIVE"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation cycle.

    Attributes:
        book: Next book, one record per universe symbol, basis descending.
        log_line: Event log line describing the top record, or None when
            the book is empty.
        trend_sample: Basis of the top record, or None when the book is empty.
        live: Symbols whose record was re-derived from a live price.
        carried: Symbols whose previous record was reused as-is.
        fallback: Symbols that got a new synthetic record.
    """

    book: list[Opportunity]
    log_line: str | None
    trend_sample: float | None
    live: tuple[str, ...] = ()
    carried: tuple[str, ...] = ()
    fallback: tuple[str, ...] = ()

    @property
    def top(self) -> Opportunity | None:
        """Highest-basis record of the book."""
        return self.book[0] if self.book else None


def sort_book(book: Iterable[Opportunity]) -> list[Opportunity]:
    """Sort records by basis descending, keeping input order on ties."""
    return sorted(book, key=lambda o: o.spread_bps, reverse=True)


def format_log_line(top: Opportunity, now: datetime) -> str:
    """Render the event log line announcing ``top`` as the leading record."""
    line = (
        f"{top.symbol}  |  {top.type.value}  |  {top.spread_bps:.1f}bps  |  "
        f"est PnL {top.est_pnl:,.0f} {top.quote}"
    )
    return f"{format_clock(now)}  -  {LIVE_MARKER}  -  {line}"


class BookReconciler:
    """Rebuilds the opportunity book from a consistent price snapshot.

    Args:
        universe: Validated symbol universe. Its order is the tie-break
            order of the sorted book.
        generator: Synthetic generator for symbols with no data at all.
        rng: Random source for fresh notionals. Defaults to the generator's.
    """

    def __init__(
        self,
        universe: Universe,
        generator: SyntheticGenerator,
        rng: random.Random | None = None,
    ) -> None:
        self.universe = universe
        self.generator = generator
        self.rng = rng or generator.rng

    def reconcile(
        self,
        previous_book: Iterable[Opportunity],
        latest_prices: Mapping[str, float | None],
        now: datetime,
    ) -> ReconcileResult:
        """Run one reconciliation cycle.

        Args:
            previous_book: Book produced by the previous cycle.
            latest_prices: Latest known price per symbol. Missing keys and
                None values both mean "no live price yet".
            now: Local time of this cycle.

        Returns:
            ReconcileResult with the next book and the history appends.
        """
        previous: dict[str, Opportunity] = {}
        for opp in previous_book:
            previous.setdefault(opp.symbol, opp)

        next_book: list[Opportunity] = []
        live: list[str] = []
        carried: list[str] = []
        fallback: list[str] = []

        for symbol in self.universe.symbols:
            price = latest_prices.get(symbol)
            prev = previous.get(symbol)

            if price is not None:
                next_book.append(self._live_record(symbol, price, prev, now))
                live.append(symbol)
            elif prev is not None:
                next_book.append(prev)
                carried.append(symbol)
            else:
                next_book.append(self.generator.generate(f"fallback-{symbol}", symbol=symbol))
                fallback.append(symbol)

        next_book = sort_book(next_book)

        log_line: str | None = None
        trend_sample: float | None = None
        if next_book:
            top = next_book[0]
            log_line = format_log_line(top, now)
            trend_sample = top.spread_bps

        return ReconcileResult(
            book=next_book,
            log_line=log_line,
            trend_sample=trend_sample,
            live=tuple(live),
            carried=tuple(carried),
            fallback=tuple(fallback),
        )

    def _live_record(
        self,
        symbol: str,
        price: float,
        prev: Opportunity | None,
        now: datetime,
    ) -> Opportunity:
        """Build a PERP record from an observed price."""
        base, quote = split_symbol(symbol)

        if prev is not None:
            notional = prev.notional
        else:
            notional = round(self.rng.uniform(*FRESH_NOTIONAL_RANGE))

        # Unanchored symbols are measured against themselves (zero basis).
        anchor = self.universe.anchor_for(symbol)
        metrics = derive(anchor if anchor is not None else price, price, notional)

        return Opportunity(
            id=prev.id if prev is not None else f"opp-{symbol}",
            symbol=symbol,
            base=base,
            quote=quote,
            type=ArbType.PERP,
            legs=[VenueLeg(venue=self.universe.primary_venue, side=LegSide.BUY, price=price)],
            spread_bps=metrics.spread_bps,
            est_pnl=metrics.est_pnl,
            notional=notional,
            score=metrics.score,
            updated_at=format_clock(now),
        )
