"""Keyed map of the latest observed price per tracked symbol.

A single dispatcher replaces per-symbol subscriptions: feeds push
``(symbol, price)`` pairs, and listeners are told when a tracked symbol's
price actually changed.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable

from perpbook.logging import get_logger

PriceListener = Callable[[str, float], None]


class PriceDispatcher:
    """Holds the latest price per symbol and fans out changes.

    Args:
        symbols: Tracked symbols. Updates for any other symbol are ignored.
    """

    def __init__(self, symbols: Iterable[str]) -> None:
        self._prices: dict[str, float | None] = {s: None for s in symbols}
        self._listeners: list[PriceListener] = []
        self._logger = get_logger("price_dispatcher")

    @property
    def symbols(self) -> list[str]:
        return list(self._prices)

    def subscribe(self, listener: PriceListener) -> None:
        """Register a listener called synchronously on every price change."""
        self._listeners.append(listener)

    def latest(self, symbol: str) -> float | None:
        return self._prices.get(symbol)

    def snapshot(self) -> dict[str, float | None]:
        """Copy of the map, None for symbols without a price yet."""
        return dict(self._prices)

    def publish(self, symbol: str, price: float) -> bool:
        """Record a new observation.

        Args:
            symbol: Unified symbol.
            price: Observed price.

        Returns:
            True if the tracked price changed and listeners were notified.
        """
        if symbol not in self._prices:
            self._logger.debug("price_untracked_symbol", symbol=symbol)
            return False
        if not math.isfinite(price) or price <= 0:
            self._logger.debug("price_rejected", symbol=symbol, price=price)
            return False
        if self._prices[symbol] == price:
            return False

        self._prices[symbol] = price
        for listener in self._listeners:
            try:
                listener(symbol, price)
            except Exception:
                self._logger.exception("price_listener_error", symbol=symbol)
        return True

    def reset(self, symbols: Iterable[str] | None = None) -> None:
        """Forget prices, optionally for a new symbol set."""
        keys = list(symbols) if symbols is not None else list(self._prices)
        self._prices = {s: None for s in keys}
