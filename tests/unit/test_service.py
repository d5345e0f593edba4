"""Unit tests for BookService."""

import random
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from perpbook.core.service import BookService
from perpbook.engine.reconciler import BookReconciler
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import Universe
from perpbook.models import ArbType, FilterSettings, NarrativeItem, Sentiment
from perpbook.monitoring.metrics import MetricsCollector

NOW = datetime(2026, 10, 19, 9, 30, 0)


@pytest.fixture
def universe() -> Universe:
    return Universe.build(
        symbols=["BTC/USDT", "ETH/USDT", "SOL/USDT"],
        anchors={"BTC/USDT": 100, "ETH/USDT": 50, "SOL/USDT": 10},
    )


def _service(universe: Universe, metrics: MetricsCollector | None = None) -> BookService:
    rng = random.Random(17)
    generator = SyntheticGenerator(universe, rng=rng, clock=lambda: NOW)
    return BookService(
        universe=universe,
        generator=generator,
        reconciler=BookReconciler(universe, generator, rng=rng),
        metrics=metrics,
        clock=lambda: NOW,
    )


class TestStartup:
    """Tests for the seeded startup state."""

    def test_seed_book(self, universe: Universe) -> None:
        service = _service(universe)
        state = service.state
        assert len(state.book) == 3
        assert all(o.id.startswith("seed-") for o in state.book)
        assert state.event_log == ()
        assert state.trend == ()
        assert state.cycles == 0


class TestPriceFlow:
    """Tests for prices flowing through the dispatcher into the book."""

    def test_price_change_reconciles(self, universe: Universe) -> None:
        service = _service(universe)
        seed_btc = next(o for o in service.state.book if o.symbol == "BTC/USDT")

        service.handle_price("BTC/USDT", 101.0)

        state = service.state
        assert state.cycles == 1
        btc = next(o for o in state.book if o.symbol == "BTC/USDT")
        assert btc.type == ArbType.PERP
        assert btc.spread_bps == pytest.approx(100.0)
        assert btc.id == seed_btc.id
        assert btc.notional == seed_btc.notional
        assert state.book[0].symbol == "BTC/USDT"
        assert state.event_log[0].startswith("09:30:00  -  LIVE  -  BTC/USDT")
        assert len(state.trend) == 1
        assert state.trend[0] == pytest.approx(100.0)

    def test_symbols_without_price_keep_seed_records(self, universe: Universe) -> None:
        service = _service(universe)
        seeds = {o.symbol: o for o in service.state.book}

        service.handle_price("BTC/USDT", 101.0)

        for o in service.state.book:
            if o.symbol != "BTC/USDT":
                assert o is seeds[o.symbol]

    def test_repeated_price_does_not_reconcile(self, universe: Universe) -> None:
        service = _service(universe)
        service.handle_price("ETH/USDT", 51.0)
        service.handle_price("ETH/USDT", 51.0)
        assert service.state.cycles == 1

    def test_untracked_symbol_ignored(self, universe: Universe) -> None:
        service = _service(universe)
        service.handle_price("DOGE/USDT", 0.2)
        assert service.state.cycles == 0

    def test_listeners_receive_state(self, universe: Universe) -> None:
        service = _service(universe)
        listener = MagicMock()
        service.on_state_change(listener)

        service.handle_price("SOL/USDT", 11.0)

        listener.assert_called_once_with(service.state)

    def test_failing_listener_is_isolated(self, universe: Universe) -> None:
        service = _service(universe)
        service.on_state_change(MagicMock(side_effect=RuntimeError("render failed")))

        service.handle_price("SOL/USDT", 11.0)

        assert service.state.cycles == 1

    def test_metrics_recorded(self, universe: Universe) -> None:
        metrics = MetricsCollector()
        service = _service(universe, metrics)

        service.handle_price("BTC/USDT", 101.0)

        registry = metrics.registry
        assert registry.get_sample_value("perpbook_reconciliations_total") == 1.0
        assert registry.get_sample_value(
            "perpbook_price_updates_total", {"symbol": "BTC/USDT"}
        ) == 1.0
        assert registry.get_sample_value("perpbook_records_total", {"path": "live"}) == 1.0
        assert registry.get_sample_value("perpbook_records_total", {"path": "carried"}) == 2.0
        assert registry.get_sample_value("perpbook_top_basis_bps") == pytest.approx(100.0)


class TestFiltersAndHeadlines:
    """Tests for filter and headline updates."""

    def test_set_filters_changes_view(self, universe: Universe) -> None:
        service = _service(universe)
        service.set_filters(FilterSettings(min_edge_bps=-1_000.0, min_notional=0.0))
        assert service.view().summary == "Showing 3 of 3 contracts"

    def test_set_headlines(self, universe: Universe) -> None:
        service = _service(universe)
        listener = MagicMock()
        service.on_state_change(listener)
        items = [
            NarrativeItem(id=f"h-{n}", category="Markets", title=f"t{n}", sentiment=Sentiment.NEUTRAL)
            for n in range(8)
        ]

        service.set_headlines(items)

        assert len(service.view().headlines) == 6
        listener.assert_called_once()
