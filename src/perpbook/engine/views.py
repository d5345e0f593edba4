"""Read-only projections over the opportunity book.

Every function here takes a book that is already sorted by basis
descending and returns a fresh value; nothing is mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from perpbook.models.idea import Direction, TradeIdea
from perpbook.models.opportunity import ArbType, Opportunity, Venue

DEFAULT_IDEA_COUNT = 3

_COMMENT_TEMPLATES: dict[Direction, str] = {
    Direction.LONG: "Bias long {base} perp on {venue}, lean into positive basis.",
    Direction.SHORT: "Bias short {base} perp on {venue}, fade stretched basis.",
}


def filter_book(
    book: Iterable[Opportunity],
    type: ArbType | None = None,
    min_edge_bps: float = 8.0,
    min_notional: float = 100_000.0,
) -> list[Opportunity]:
    """Keep records matching the type and clearing both thresholds.

    Args:
        book: Basis-sorted book.
        type: Required structure, or None for all structures.
        min_edge_bps: Minimum basis in bps (inclusive).
        min_notional: Minimum notional (inclusive).

    Returns:
        Matching records in input order.
    """
    return [
        o
        for o in book
        if (type is None or o.type == type)
        and o.spread_bps >= min_edge_bps
        and o.notional >= min_notional
    ]


def venue_counts(book: Iterable[Opportunity], venues: Iterable[Venue]) -> dict[Venue, int]:
    """Count records per venue by the venue of each record's cheapest leg."""
    counts = {venue: 0 for venue in venues}
    for o in book:
        venue = o.best_leg.venue
        if venue in counts:
            counts[venue] += 1
    return counts


def aggregate_pnl(book: Iterable[Opportunity]) -> float:
    """Sum of estimated PnL over the whole book."""
    return sum((o.est_pnl for o in book), 0.0)


def _idea(opp: Opportunity, direction: Direction) -> TradeIdea:
    venue = opp.best_leg.venue
    return TradeIdea(
        id=f"{opp.id}-{direction.value}",
        symbol=opp.symbol,
        venue=venue,
        direction=direction,
        edge_bps=opp.spread_bps,
        est_pnl=opp.est_pnl,
        comment=_COMMENT_TEMPLATES[direction].format(base=opp.base, venue=venue.value),
    )


def top_ideas(
    book: Sequence[Opportunity],
    k: int = DEFAULT_IDEA_COUNT,
) -> tuple[list[TradeIdea], list[TradeIdea]]:
    """Build long and short ideas from the extremes of the book.

    Long ideas come from the book prefix (highest basis first), short ideas
    from the book suffix read backwards (lowest basis first).

    Args:
        book: Basis-sorted book.
        k: Number of ideas per side.

    Returns:
        Tuple of (long_ideas, short_ideas).
    """
    if k <= 0:
        return [], []
    longs = [_idea(o, Direction.LONG) for o in book[:k]]
    shorts = [_idea(o, Direction.SHORT) for o in list(reversed(book))[:k]]
    return longs, shorts
