"""Exchange session classification.

All inputs are tz-aware datetimes (naive values are treated as UTC) and are
converted to the exchange timezone before comparing against the calendar.
The regular session runs weekdays only; configured holidays are closed all
day. There are no error conditions: the clock reading is authoritative.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from trade_guard.config import Settings
from trade_guard.types import MarketStatus


class MarketClock:
    """Classifies wall-clock time into a market phase."""

    def __init__(
        self,
        *,
        tz: str = "America/New_York",
        premarket_start: time = time(4, 0),
        market_open: time = time(9, 30),
        market_close: time = time(16, 0),
        no_trade_zone_minutes: int = 15,
        holidays: Iterable[date] = (),
    ) -> None:
        self._tz = ZoneInfo(tz)
        self._premarket_start = premarket_start
        self._open = market_open
        self._close = market_close
        self._no_trade_zone = timedelta(minutes=no_trade_zone_minutes)
        self._holidays = frozenset(holidays)

    @classmethod
    def from_settings(cls, settings: Settings) -> MarketClock:
        return cls(
            tz=settings.market_timezone,
            premarket_start=settings.premarket_start,
            market_open=settings.market_open,
            market_close=settings.market_close,
            no_trade_zone_minutes=settings.no_trade_zone_minutes,
            holidays=settings.market_holidays,
        )

    def status(self, now: datetime) -> MarketStatus:
        local = self._to_local(now)
        day = local.date()
        if not self.is_trading_day(day):
            return MarketStatus.CLOSED

        open_at = self._at(day, self._open)
        if local < self._at(day, self._premarket_start):
            return MarketStatus.CLOSED
        if local < open_at:
            return MarketStatus.PRE_MARKET
        if local < open_at + self._no_trade_zone:
            return MarketStatus.NO_TRADE_ZONE
        if local < self._at(day, self._close):
            return MarketStatus.OPEN
        return MarketStatus.CLOSED

    def is_no_trade_zone(self, now: datetime) -> bool:
        """True while the opening range is still forming."""
        return self.status(now) == MarketStatus.NO_TRADE_ZONE

    def is_trading_day(self, day: date) -> bool:
        return day.weekday() < 5 and day not in self._holidays

    def trading_date(self, now: datetime) -> date:
        """Calendar date in the exchange timezone."""
        return self._to_local(now).date()

    def end_of_day(self, now: datetime) -> datetime:
        """Exchange-local midnight ending the day that contains ``now``."""
        next_day = self.trading_date(now) + timedelta(days=1)
        return self._at(next_day, time(0, 0))

    def next_open(self, now: datetime) -> datetime:
        """Next regular session open strictly after ``now``."""
        local = self._to_local(now)
        day = local.date()
        # Holiday runs are bounded in practice; a year is a hard stop.
        for _ in range(366):
            if self.is_trading_day(day):
                open_at = self._at(day, self._open)
                if open_at > local:
                    return open_at
            day += timedelta(days=1)
        raise RuntimeError("no_trading_day_within_a_year")

    def _to_local(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self._tz)

    def _at(self, day: date, at: time) -> datetime:
        return datetime.combine(day, at, tzinfo=self._tz)
