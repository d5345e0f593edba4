"""perpbook entry point.

Assembles the universe, book service and feeds from configuration and runs
them until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import random
import signal
import sys

from perpbook import __version__
from perpbook.config import AppConfig, load_config
from perpbook.connectors.binance import BinanceTickerFeed
from perpbook.core.service import BookService
from perpbook.engine.reconciler import BookReconciler
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import Universe, UniverseError
from perpbook.feeds.narrative import NarrativeFeed
from perpbook.logging import get_logger, setup_logging
from perpbook.monitoring.metrics import MetricsCollector

EXIT_CONFIG_ERROR = 2


def build_service(
    config: AppConfig,
    universe: Universe,
    metrics: MetricsCollector | None = None,
) -> BookService:
    """Build the book service with a (possibly seeded) random source.

    Args:
        config: Application configuration.
        universe: Validated universe.
        metrics: Optional Prometheus collector.

    Returns:
        A service holding the seeded startup book.
    """
    rng = random.Random(config.system.random_seed)
    generator = SyntheticGenerator(universe, rng=rng)
    return BookService(
        universe=universe,
        generator=generator,
        reconciler=BookReconciler(universe, generator, rng=rng),
        filters=config.filters,
        metrics=metrics,
    )


def build_ticker_feed(
    config: AppConfig,
    service: BookService,
    metrics: MetricsCollector | None = None,
) -> BinanceTickerFeed:
    """Wire the Binance ticker feed into the service's price dispatcher."""

    def _on_status(connected: bool) -> None:
        if metrics is not None:
            metrics.update_connection("binance", connected)

    return BinanceTickerFeed(
        symbols=service.universe.symbols,
        on_price=service.handle_price,
        on_status=_on_status,
        url=config.binance.ws_url,
        reconnect_delay=config.binance.reconnect_delay_s,
        max_reconnect_delay=config.binance.max_reconnect_delay_s,
        heartbeat_interval=config.binance.heartbeat_interval_s,
    )


def build_narrative_feed(
    config: AppConfig,
    metrics: MetricsCollector | None = None,
) -> NarrativeFeed:
    return NarrativeFeed(
        sources=config.narrative.sources,
        proxy_url=config.narrative.proxy_url,
        per_source_limit=config.narrative.per_source_limit,
        max_items=config.narrative.max_items,
        timeout_s=config.narrative.timeout_s,
        on_fetch=metrics.record_headline_fetch if metrics is not None else None,
    )


def log_summary(service: BookService) -> None:
    """Log a one-shot summary of the current view."""
    view = service.view()
    get_logger("main").info(
        "book_summary",
        showing=view.summary,
        cycles=service.state.cycles,
        aggregate_pnl=round(view.aggregate_pnl, 2),
        venues={v.value: n for v, n in view.venue_counts.items()},
        longs=[i.symbol for i in view.long_ideas],
        shorts=[i.symbol for i in view.short_ideas],
        last_event=view.event_log[0] if view.event_log else None,
        headlines=len(view.headlines),
    )


async def _summary_loop(service: BookService, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        log_summary(service)


async def run(config: AppConfig, universe: Universe) -> None:
    """Run the service until SIGINT/SIGTERM.

    Args:
        config: Application configuration.
        universe: Validated universe.
    """
    logger = get_logger("main")
    logger.info("perpbook_starting", version=__version__, symbols=list(universe.symbols))

    metrics: MetricsCollector | None = None
    if config.monitoring.metrics_enabled:
        metrics = MetricsCollector()
        metrics.set_system_info(
            __version__,
            list(universe.symbols),
            [v.value for v in universe.venues],
        )
        metrics.start_server(config.monitoring.metrics_port)
        logger.info("metrics_server_started", port=config.monitoring.metrics_port)

    service = build_service(config, universe, metrics)

    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    ticker: BinanceTickerFeed | None = None
    tasks: list[asyncio.Task[None]] = []

    try:
        if config.binance.enabled:
            ticker = build_ticker_feed(config, service, metrics)
            tasks.append(asyncio.create_task(ticker.start()))

        if config.narrative.enabled:
            narrative = build_narrative_feed(config, metrics)
            tasks.append(
                asyncio.create_task(
                    narrative.poll(service.set_headlines, config.narrative.refresh_interval_s)
                )
            )

        if config.system.summary_interval_s > 0:
            tasks.append(asyncio.create_task(_summary_loop(service, config.system.summary_interval_s)))

        await shutdown_event.wait()

    finally:
        logger.info("perpbook_shutting_down")

        if ticker is not None:
            await ticker.stop()

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        log_summary(service)
        logger.info("perpbook_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="perpbook - live ranked book of perpetual basis opportunities",
    )
    parser.add_argument(
        "--config-dir",
        default="configs",
        help="Path to configuration directory (default: configs)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level override (default: from config)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for synthetic fallback data (default: from config)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    config = load_config(config_dir=args.config_dir)
    if args.log_level is not None:
        config.system.log_level = args.log_level
    if args.seed is not None:
        config.system.random_seed = args.seed
    if args.json_logs:
        config.system.json_logs = True

    setup_logging(log_level=config.system.log_level, json_format=config.system.json_logs)

    try:
        universe = config.build_universe()
    except UniverseError as e:
        get_logger("main").error("invalid_universe", error=str(e))
        sys.exit(EXIT_CONFIG_ERROR)

    asyncio.run(run(config, universe))


if __name__ == "__main__":
    main()
