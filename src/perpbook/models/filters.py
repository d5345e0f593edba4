"""Filter settings for the opportunity table."""

from pydantic import BaseModel, Field

from perpbook.models.opportunity import ArbType


class FilterSettings(BaseModel):
    """Thresholds applied to the filtered view of the book.

    Attributes:
        type: Required structure, or None for all structures.
        min_edge_bps: Minimum basis in bps.
        min_notional: Minimum notional in quote currency.
    """

    model_config = {"frozen": True}

    type: ArbType | None = None
    min_edge_bps: float = 8.0
    min_notional: float = Field(default=100_000.0, ge=0)
