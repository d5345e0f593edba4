"""Binance public ticker feed.

Subscribes to the ``<symbol>@ticker`` stream of every tracked symbol over
one combined-stream connection and reports the last price of each
``24hrTicker`` event. Anything that does not parse to a finite positive
price for a tracked symbol is discarded.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable

from perpbook.connectors.stream import StreamConnection
from perpbook.logging import get_logger

WS_COMBINED_URL = "wss://stream.binance.com:9443/stream"
TICKER_EVENT = "24hrTicker"

PriceCallback = Callable[[str, float], None]
StatusCallback = Callable[[bool], None]


def to_binance_symbol(symbol: str) -> str:
    """Convert a unified symbol to a Binance stream symbol.

    Args:
        symbol: Unified symbol (e.g. "BTC/USDT").

    Returns:
        Binance stream symbol (e.g. "btcusdt").
    """
    return symbol.replace("/", "").lower()


def ticker_channel(symbol: str) -> str:
    """Stream name of the 24h rolling ticker for a unified symbol."""
    return f"{to_binance_symbol(symbol)}@ticker"


def parse_last_price(payload: dict) -> float | None:
    """Extract the last price (``c``) from a ticker payload.

    Returns:
        The price, or None when missing, unparseable, non-finite or not
        strictly positive.
    """
    raw = payload.get("c")
    if raw is None:
        return None
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


class BinanceTickerFeed:
    """Live last-price feed for a fixed set of symbols.

    Args:
        symbols: Unified symbols to track.
        on_price: Called with ``(symbol, price)`` for every valid tick.
        on_status: Optional connection status callback.
        url: Combined-stream endpoint.
        reconnect_delay: First reconnect delay in seconds.
        max_reconnect_delay: Reconnect delay ceiling in seconds.
        heartbeat_interval: Ping interval in seconds.
    """

    def __init__(
        self,
        symbols: Iterable[str],
        on_price: PriceCallback,
        on_status: StatusCallback | None = None,
        url: str = WS_COMBINED_URL,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 60.0,
        heartbeat_interval: float = 30.0,
    ) -> None:
        self._on_price = on_price
        # Exchange symbol -> unified symbol, taken from the universe rather
        # than guessed from quote suffixes.
        self._lookup: dict[str, str] = {to_binance_symbol(s).upper(): s for s in symbols}
        self._stream = StreamConnection(
            url=url,
            on_message=self.handle_message,
            on_status=on_status,
            reconnect_delay=reconnect_delay,
            max_reconnect_delay=max_reconnect_delay,
            heartbeat_interval=heartbeat_interval,
        )
        self._ticks = 0
        self._discarded = 0
        self._logger = get_logger("binance_ticker")

    @property
    def symbols(self) -> list[str]:
        return list(self._lookup.values())

    @property
    def is_connected(self) -> bool:
        return self._stream.is_connected

    @property
    def stats(self) -> dict[str, int]:
        return {"ticks": self._ticks, "discarded": self._discarded}

    async def start(self) -> None:
        """Connect and subscribe to every tracked ticker stream."""
        await self._stream.subscribe([ticker_channel(s) for s in self.symbols])
        await self._stream.connect()
        self._logger.info("binance_ticker_started", symbols=self.symbols)

    async def stop(self) -> None:
        """Abort the connection. Ticks already delivered are unaffected."""
        await self._stream.close()
        self._logger.info("binance_ticker_stopped", **self.stats)

    async def handle_message(self, data: dict) -> None:
        """Route one decoded frame.

        Accepts both the combined envelope ``{"stream": ..., "data": {...}}``
        and bare event payloads. Subscription acks (``{"result": null}``)
        and other events are ignored.
        """
        payload = data.get("data") if "stream" in data else data
        if not isinstance(payload, dict) or payload.get("e") != TICKER_EVENT:
            return

        symbol = self._lookup.get(str(payload.get("s", "")).upper())
        price = parse_last_price(payload)
        if symbol is None or price is None:
            self._discarded += 1
            self._logger.debug("ticker_discarded", raw_symbol=payload.get("s"), raw_price=payload.get("c"))
            return

        self._ticks += 1
        self._on_price(symbol, price)
