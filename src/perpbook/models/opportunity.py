"""Opportunity book data models."""

import enum
from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_QUOTE = "USDT"
CLOCK_FORMAT = "%H:%M:%S"


class Venue(str, enum.Enum):
    """Trading venue a quote was observed on."""

    BINANCE = "BINANCE"


class LegSide(str, enum.Enum):
    """Side of a venue leg."""

    BUY = "BUY"
    SELL = "SELL"


class ArbType(str, enum.Enum):
    """Structure of an opportunity."""

    SPOT = "SPOT"
    PERP = "PERP"
    SPOT_PERP = "SPOT/PERP"


class VenueLeg(BaseModel):
    """One observed quote on one venue for one side of a trade.

    Attributes:
        venue: Venue the quote comes from.
        side: BUY or SELL.
        price: Observed price in quote currency.
    """

    model_config = {"frozen": True}

    venue: Venue
    side: LegSide
    price: float


class Opportunity(BaseModel):
    """A ranked record in the opportunity book, one per tracked symbol.

    Records are never mutated; a reconciliation cycle either reuses a
    record as-is or replaces it with a new one.

    Attributes:
        id: Stable identifier. Live records keep the id of the record they
            replace, fallback records are tagged ``fallback-<symbol>``.
        symbol: Unified pair (e.g. "BTC/USDT").
        base: Base asset (e.g. "BTC").
        quote: Quote asset (e.g. "USDT").
        type: Structure of the opportunity.
        legs: Observed venue legs, at least one.
        spread_bps: Signed basis against the symbol anchor, in basis points.
        est_pnl: Signed PnL estimate in quote currency.
        notional: Gross exposure in quote currency, carried across cycles.
        score: Quality score in [20, 100].
        updated_at: Local wall-clock time of the last recomputation (HH:MM:SS).
    """

    model_config = {"frozen": True}

    id: str
    symbol: str
    base: str
    quote: str
    type: ArbType
    legs: list[VenueLeg] = Field(min_length=1)
    spread_bps: float
    est_pnl: float
    notional: float
    score: int = Field(ge=20, le=100)
    updated_at: str

    @property
    def best_leg(self) -> VenueLeg:
        """Cheapest leg by price; the first one wins on ties."""
        return min(self.legs, key=lambda leg: leg.price)


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split a unified symbol into ``(base, quote)``.

    A symbol without a quote part (e.g. "BTC") is quoted in USDT.
    """
    base, _, quote = symbol.partition("/")
    return base, quote or DEFAULT_QUOTE


def format_clock(moment: datetime) -> str:
    """Format a timestamp as 24-hour local wall-clock time, without date."""
    return moment.strftime(CLOCK_FORMAT)
