"""Fixed symbol universe with static anchor values.

The universe is validated once at startup. Reconciliation relies on every
configured anchor being finite and strictly positive and never re-checks it.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from perpbook.models.opportunity import Venue, split_symbol


class UniverseError(ValueError):
    """Raised when the configured symbol universe is unusable."""


class InvalidAnchorError(UniverseError):
    """Raised when a symbol's anchor value is zero, negative or not finite."""

    def __init__(self, symbol: str, anchor: float) -> None:
        self.symbol = symbol
        self.anchor = anchor
        super().__init__(f"Invalid anchor for {symbol}: {anchor!r} (must be finite and > 0)")


def check_anchor(symbol: str, anchor: float) -> float:
    """Return ``anchor`` as float, raising InvalidAnchorError if unusable."""
    try:
        value = float(anchor)
    except (TypeError, ValueError) as e:
        raise InvalidAnchorError(symbol, anchor) from e
    if not math.isfinite(value) or value <= 0:
        raise InvalidAnchorError(symbol, value)
    return value


@dataclass(frozen=True)
class Universe:
    """Ordered, static set of tracked symbols.

    Attributes:
        symbols: Tracked pairs in iteration (and tie-break) order.
        anchors: Static fair value per symbol. Symbols may lack an anchor.
        venues: Supported venues; the first one quotes every live leg.
    """

    symbols: tuple[str, ...]
    anchors: Mapping[str, float] = field(default_factory=dict)
    venues: tuple[Venue, ...] = (Venue.BINANCE,)

    @classmethod
    def build(
        cls,
        symbols: Iterable[str],
        anchors: Mapping[str, float] | None = None,
        venues: Iterable[str | Venue] = (Venue.BINANCE,),
    ) -> Universe:
        """Validate raw configuration values and build a Universe.

        Raises:
            UniverseError: On duplicate symbols, malformed symbols or an
                empty or unknown venue list.
            InvalidAnchorError: On any zero, negative or non-finite anchor.
        """
        ordered = tuple(s.strip().upper() for s in symbols)
        if len(set(ordered)) != len(ordered):
            raise UniverseError(f"Duplicate symbols in universe: {list(ordered)}")
        for symbol in ordered:
            base, _ = split_symbol(symbol)
            if not base:
                raise UniverseError(f"Malformed symbol: {symbol!r}")

        checked = {
            symbol.strip().upper(): check_anchor(symbol, value)
            for symbol, value in (anchors or {}).items()
        }

        try:
            venue_list = tuple(Venue(v) for v in venues)
        except ValueError as e:
            raise UniverseError(str(e)) from e
        if not venue_list:
            raise UniverseError("At least one venue must be configured")

        return cls(symbols=ordered, anchors=checked, venues=venue_list)

    @property
    def primary_venue(self) -> Venue:
        """The venue every live and synthetic leg is quoted on."""
        return self.venues[0]

    def anchor_for(self, symbol: str) -> float | None:
        """Return the symbol's anchor, or None when it has none."""
        return self.anchors.get(symbol)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.symbols

    def __len__(self) -> int:
        return len(self.symbols)
