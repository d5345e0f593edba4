"""Trade idea models derived from the opportunity book."""

import enum

from pydantic import BaseModel

from perpbook.models.opportunity import Venue


class Direction(str, enum.Enum):
    """Suggested direction of a trade idea."""

    LONG = "LONG"
    SHORT = "SHORT"


class TradeIdea(BaseModel):
    """An advisory long or short idea built from one book record.

    Attributes:
        id: ``<opportunity id>-LONG`` or ``<opportunity id>-SHORT``.
        symbol: Unified pair.
        venue: Venue of the record's cheapest leg.
        direction: LONG or SHORT.
        edge_bps: Basis of the source record in bps.
        est_pnl: PnL estimate of the source record.
        comment: Templated rationale.
    """

    model_config = {"frozen": True}

    id: str
    symbol: str
    venue: Venue
    direction: Direction
    edge_bps: float
    est_pnl: float
    comment: str
