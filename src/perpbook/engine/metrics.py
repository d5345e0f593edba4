"""Basis, PnL and quality score derivation.

Pure computation module with no I/O and no state.
"""

import math

from pydantic import BaseModel

from perpbook.engine.universe import InvalidAnchorError

BPS_PER_UNIT = 10_000
SCORE_BASE = 60
SCORE_MIN = 20
SCORE_MAX = 100


class DerivedMetrics(BaseModel):
    """Metrics derived for one observed price.

    Attributes:
        spread_bps: Signed basis against the anchor in basis points.
        est_pnl: Half the basis applied to the carried notional.
        score: Quality score clamped to [20, 100].
    """

    model_config = {"frozen": True}

    spread_bps: float
    est_pnl: float
    score: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going towards +infinity."""
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    """Round ``value`` and clamp it into the [20, 100] score band."""
    return min(SCORE_MAX, max(SCORE_MIN, round_half_up(value)))


def derive(anchor: float, observed_price: float, carried_notional: float) -> DerivedMetrics:
    """Derive basis, estimated PnL and score for an observed price.

    Args:
        anchor: Static fair value of the symbol.
        observed_price: Latest observed price.
        carried_notional: Notional carried over from the previous record.

    Returns:
        DerivedMetrics for the observation.

    Raises:
        InvalidAnchorError: If ``anchor`` is zero. Anchors are validated at
            startup, so this only fires on a misconfigured caller.
    """
    if anchor == 0:
        raise InvalidAnchorError("<unknown>", anchor)

    spread_frac = (observed_price - anchor) / anchor
    spread_bps = spread_frac * BPS_PER_UNIT
    return DerivedMetrics(
        spread_bps=spread_bps,
        est_pnl=carried_notional * (spread_frac / 2),
        score=clamp_score(SCORE_BASE + abs(spread_bps) / 4),
    )
