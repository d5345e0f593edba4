"""Market data connectors."""

from perpbook.connectors.binance import BinanceTickerFeed
from perpbook.connectors.stream import StreamConnection

__all__ = ["BinanceTickerFeed", "StreamConnection"]
