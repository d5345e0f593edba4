"""End-to-end flow: ticker frames through the dispatcher into the book view."""

from __future__ import annotations

import random
from datetime import datetime

import pytest

from perpbook.connectors.binance import BinanceTickerFeed
from perpbook.core.service import BookService
from perpbook.core.state import EVENT_LOG_CAP, TREND_CAP
from perpbook.engine.reconciler import BookReconciler
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import Universe
from perpbook.models import ArbType, FilterSettings, Venue
from perpbook.monitoring.metrics import MetricsCollector

NOW = datetime(2026, 10, 19, 14, 5, 9)

ANCHORS = {
    "BTC/USDT": 98000,
    "ETH/USDT": 3600,
    "SOL/USDT": 210,
    "DOGE/USDT": 0.18,
}


def _frame(binance_symbol: str, price: str) -> dict:
    return {
        "stream": f"{binance_symbol.lower()}@ticker",
        "data": {"e": "24hrTicker", "s": binance_symbol, "c": price},
    }


@pytest.fixture
def universe() -> Universe:
    return Universe.build(symbols=list(ANCHORS), anchors=ANCHORS)


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def service(universe: Universe, metrics: MetricsCollector) -> BookService:
    rng = random.Random(2026)
    generator = SyntheticGenerator(universe, rng=rng, clock=lambda: NOW)
    return BookService(
        universe=universe,
        generator=generator,
        reconciler=BookReconciler(universe, generator, rng=rng),
        filters=FilterSettings(type=ArbType.PERP, min_edge_bps=25.0, min_notional=0.0),
        metrics=metrics,
        clock=lambda: NOW,
    )


@pytest.fixture
def feed(service: BookService) -> BinanceTickerFeed:
    return BinanceTickerFeed(symbols=service.universe.symbols, on_price=service.handle_price)


class TestBookFlow:
    """Ticks flowing from the feed into the ranked book."""

    @pytest.mark.asyncio
    async def test_ticks_rank_the_book(self, service: BookService, feed: BinanceTickerFeed) -> None:
        # +1% on ETH, -0.5% on BTC
        await feed.handle_message(_frame("ETHUSDT", "3636"))
        await feed.handle_message(_frame("BTCUSDT", "97510"))

        state = service.state
        assert state.cycles == 2
        assert state.book[0].symbol == "ETH/USDT"
        assert state.book[0].spread_bps == pytest.approx(100.0)
        assert state.book[-1].symbol == "BTC/USDT"
        assert state.book[-1].spread_bps == pytest.approx(-50.0)
        assert len(state.book) == 4
        assert {o.symbol for o in state.book} == set(ANCHORS)

        view = service.view()
        assert [o.symbol for o in view.rows] == ["ETH/USDT"]
        assert view.summary == "Showing 1 of 4 contracts"
        assert view.venue_counts == {Venue.BINANCE: 4}
        assert view.long_ideas[0].id.endswith("-LONG")
        assert view.short_ideas[0].symbol == "BTC/USDT"
        assert view.event_log[0].startswith("14:05:09  -  LIVE  -  ETH/USDT  |  PERP  |  100.0bps")

    @pytest.mark.asyncio
    async def test_noise_does_not_reconcile(self, service: BookService, feed: BinanceTickerFeed) -> None:
        await feed.handle_message({"result": None, "id": 1})
        await feed.handle_message(_frame("XRPUSDT", "0.6"))
        await feed.handle_message(_frame("SOLUSDT", "-1"))

        assert service.state.cycles == 0
        assert feed.stats == {"ticks": 0, "discarded": 2}

    @pytest.mark.asyncio
    async def test_histories_stay_bounded(self, service: BookService, feed: BinanceTickerFeed) -> None:
        for i in range(60):
            await feed.handle_message(_frame("SOLUSDT", f"{210 + i * 0.01:.2f}"))

        state = service.state
        assert state.cycles == 60
        assert len(state.event_log) == EVENT_LOG_CAP
        assert len(state.trend) == TREND_CAP

    @pytest.mark.asyncio
    async def test_metrics_follow_the_book(
        self,
        service: BookService,
        feed: BinanceTickerFeed,
        metrics: MetricsCollector,
    ) -> None:
        await feed.handle_message(_frame("DOGEUSDT", "0.1818"))

        reg = metrics.registry
        assert reg.get_sample_value("perpbook_reconciliations_total") == 1.0
        assert reg.get_sample_value("perpbook_basis_bps", {"symbol": "DOGE/USDT"}) == pytest.approx(100.0)
        assert reg.get_sample_value("perpbook_aggregate_pnl") == pytest.approx(service.view().aggregate_pnl)
