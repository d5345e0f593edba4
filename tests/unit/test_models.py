"""Unit tests for the data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from perpbook.models import (
    ArbType,
    FilterSettings,
    LegSide,
    Opportunity,
    Venue,
    VenueLeg,
    format_clock,
    split_symbol,
)


def _opp(**overrides: object) -> Opportunity:
    fields: dict[str, object] = {
        "id": "opp-BTC/USDT",
        "symbol": "BTC/USDT",
        "base": "BTC",
        "quote": "USDT",
        "type": ArbType.PERP,
        "legs": [VenueLeg(venue=Venue.BINANCE, side=LegSide.BUY, price=98_000.0)],
        "spread_bps": 4.2,
        "est_pnl": 42.0,
        "notional": 200_000,
        "score": 61,
        "updated_at": "10:00:00",
    }
    fields.update(overrides)
    return Opportunity(**fields)


class TestOpportunity:
    """Tests for the Opportunity model."""

    def test_frozen(self) -> None:
        opp = _opp()
        with pytest.raises(ValidationError):
            opp.score = 99  # type: ignore[misc]

    def test_requires_a_leg(self) -> None:
        with pytest.raises(ValidationError):
            _opp(legs=[])

    @pytest.mark.parametrize("score", [19, 101])
    def test_score_band(self, score: int) -> None:
        with pytest.raises(ValidationError):
            _opp(score=score)

    def test_type_from_value(self) -> None:
        assert _opp(type="SPOT/PERP").type == ArbType.SPOT_PERP

    def test_best_leg_is_cheapest(self) -> None:
        legs = [
            VenueLeg(venue=Venue.BINANCE, side=LegSide.SELL, price=101.0),
            VenueLeg(venue=Venue.BINANCE, side=LegSide.BUY, price=100.0),
        ]
        assert _opp(legs=legs).best_leg.side == LegSide.BUY


class TestFilterSettings:
    """Tests for FilterSettings."""

    def test_defaults(self) -> None:
        f = FilterSettings()
        assert f.type is None
        assert f.min_edge_bps == 8.0
        assert f.min_notional == 100_000.0

    def test_negative_notional_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FilterSettings(min_notional=-1)


class TestHelpers:
    """Tests for symbol and clock helpers."""

    def test_split_symbol(self) -> None:
        assert split_symbol("SOL/USDT") == ("SOL", "USDT")

    def test_split_symbol_defaults_quote(self) -> None:
        assert split_symbol("BTC") == ("BTC", "USDT")

    def test_format_clock(self) -> None:
        assert format_clock(datetime(2026, 1, 2, 7, 8, 9)) == "07:08:09"
