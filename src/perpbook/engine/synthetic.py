"""Synthetic opportunity generator used when no live price is available.

All randomness flows through an injectable ``random.Random`` so a seeded
generator reproduces the same records.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime

from perpbook.engine.metrics import BPS_PER_UNIT, clamp_score
from perpbook.engine.universe import Universe, UniverseError
from perpbook.models.opportunity import (
    ArbType,
    LegSide,
    Opportunity,
    VenueLeg,
    format_clock,
    split_symbol,
)

# Bounds of the uniform draws behind a synthetic record.
SPREAD_BPS_RANGE = (-20.0, 20.0)
NOTIONAL_RANGE = (50_000.0, 750_000.0)
SCORE_RANGE = (40.0, 98.0)
UNANCHORED_PRICE_RANGE = (1.0, 1000.0)

# Cumulative cut-offs of the type roll: 35% SPOT, 35% PERP, 30% SPOT/PERP.
_TYPE_CUTOFFS: tuple[tuple[float, ArbType], ...] = (
    (0.35, ArbType.SPOT),
    (0.70, ArbType.PERP),
)


class SyntheticGenerator:
    """Produces plausible random opportunity records.

    Args:
        universe: Symbol universe to draw symbols and anchors from.
        rng: Random source. Defaults to an unseeded ``random.Random``.
        clock: Returns the current local time for ``updated_at``.
    """

    def __init__(
        self,
        universe: Universe,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.universe = universe
        self.rng = rng or random.Random()
        self._clock = clock

    def generate(self, id: str, symbol: str | None = None) -> Opportunity:
        """Generate one synthetic opportunity.

        Args:
            id: Identifier given to the record.
            symbol: Symbol to generate for. Drawn uniformly from the
                universe when omitted.

        Returns:
            A new Opportunity with a single BUY leg on the primary venue.

        Raises:
            UniverseError: If no symbol is given and the universe is empty.
        """
        rng = self.rng
        if symbol is None:
            if not self.universe.symbols:
                raise UniverseError("Cannot draw a symbol from an empty universe")
            symbol = rng.choice(self.universe.symbols)
        base, quote = split_symbol(symbol)

        base_price = self.universe.anchor_for(symbol)
        if base_price is None:
            base_price = rng.uniform(*UNANCHORED_PRICE_RANGE)

        spread_bps = rng.uniform(*SPREAD_BPS_RANGE)
        notional = round(rng.uniform(*NOTIONAL_RANGE))
        est_pnl = notional * (spread_bps / BPS_PER_UNIT) / 2

        return Opportunity(
            id=id,
            symbol=symbol,
            base=base,
            quote=quote,
            type=self._roll_type(),
            legs=[VenueLeg(venue=self.universe.primary_venue, side=LegSide.BUY, price=base_price)],
            spread_bps=spread_bps,
            est_pnl=est_pnl,
            notional=notional,
            score=clamp_score(rng.uniform(*SCORE_RANGE)),
            updated_at=format_clock(self._clock()),
        )

    def seed_book(self) -> list[Opportunity]:
        """Build the startup book: one synthetic record per universe symbol.

        Returns:
            Records tagged ``seed-<symbol>``, sorted by basis descending.
        """
        book = [self.generate(f"seed-{symbol}", symbol=symbol) for symbol in self.universe.symbols]
        book.sort(key=lambda o: o.spread_bps, reverse=True)
        return book

    def _roll_type(self) -> ArbType:
        roll = self.rng.random()
        for cutoff, arb_type in _TYPE_CUTOFFS:
            if roll < cutoff:
                return arb_type
        return ArbType.SPOT_PERP
