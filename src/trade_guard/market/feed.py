"""Market data collaborators consumed by the engine."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Protocol


class MarketDataFeed(Protocol):
    """Supplies quotes and the authoritative clock reading."""

    def current_price(self, symbol: str) -> float: ...

    def now(self) -> datetime: ...


class StaticMarketData:
    """Fixed quotes with either the system clock or a supplied one."""

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._prices = {symbol.upper(): float(price) for symbol, price in (prices or {}).items()}
        self._clock = clock

    def set_price(self, symbol: str, price: float) -> None:
        self._prices[symbol.upper()] = float(price)

    def current_price(self, symbol: str) -> float:
        try:
            return self._prices[symbol.upper()]
        except KeyError:
            raise KeyError(f"no_quote_for_symbol: {symbol}") from None

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(timezone.utc)
