from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from trade_guard.config import Settings
from trade_guard.market.clock import MarketClock
from trade_guard.types import MarketStatus

NY = ZoneInfo("America/New_York")


def _ny(hour: int, minute: int, day: date = date(2025, 1, 2)) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=NY)


@pytest.mark.parametrize(
    ("at", "expected"),
    [
        (_ny(3, 59), MarketStatus.CLOSED),
        (_ny(4, 0), MarketStatus.PRE_MARKET),
        (_ny(9, 29), MarketStatus.PRE_MARKET),
        (_ny(9, 30), MarketStatus.NO_TRADE_ZONE),
        (_ny(9, 44), MarketStatus.NO_TRADE_ZONE),
        (_ny(9, 45), MarketStatus.OPEN),
        (_ny(15, 59), MarketStatus.OPEN),
        (_ny(16, 0), MarketStatus.CLOSED),
        (_ny(20, 0), MarketStatus.CLOSED),
    ],
)
def test_status_windows(at: datetime, expected: MarketStatus) -> None:
    assert MarketClock().status(at) == expected


def test_weekend_is_closed() -> None:
    saturday = date(2025, 1, 4)
    assert MarketClock().status(_ny(11, 0, saturday)) == MarketStatus.CLOSED


def test_holiday_is_closed() -> None:
    clock = MarketClock(holidays=[date(2025, 1, 2)])
    assert clock.status(_ny(11, 0)) == MarketStatus.CLOSED


def test_utc_input_is_converted_with_dst() -> None:
    clock = MarketClock()
    # 14:40 UTC is 09:40 EST in winter; 13:40 UTC is 09:40 EDT in summer.
    assert clock.status(datetime(2025, 1, 15, 14, 40, tzinfo=UTC)) == MarketStatus.NO_TRADE_ZONE
    assert clock.status(datetime(2025, 7, 1, 13, 40, tzinfo=UTC)) == MarketStatus.NO_TRADE_ZONE
    assert clock.status(datetime(2025, 7, 1, 14, 40, tzinfo=UTC)) == MarketStatus.OPEN


def test_naive_input_is_treated_as_utc() -> None:
    clock = MarketClock()
    assert clock.status(datetime(2025, 1, 15, 16, 0)) == MarketStatus.OPEN


def test_is_no_trade_zone_uses_configured_window() -> None:
    clock = MarketClock(no_trade_zone_minutes=5)
    assert clock.is_no_trade_zone(_ny(9, 34))
    assert not clock.is_no_trade_zone(_ny(9, 35))


def test_zero_minute_window_opens_immediately() -> None:
    clock = MarketClock(no_trade_zone_minutes=0)
    assert clock.status(_ny(9, 30)) == MarketStatus.OPEN


def test_trading_date_and_end_of_day() -> None:
    clock = MarketClock()
    # 02:00 UTC on Jan 3 is still Jan 2 in New York.
    late = datetime(2025, 1, 3, 2, 0, tzinfo=UTC)
    assert clock.trading_date(late) == date(2025, 1, 2)
    assert clock.end_of_day(late) == datetime(2025, 1, 3, 0, 0, tzinfo=NY)


def test_next_open_skips_weekend() -> None:
    clock = MarketClock()
    friday_evening = _ny(17, 0, date(2025, 1, 3))
    assert clock.next_open(friday_evening) == _ny(9, 30, date(2025, 1, 6))


def test_from_settings() -> None:
    settings = Settings(no_trade_zone_minutes=30, market_holidays="2025-01-02")
    clock = MarketClock.from_settings(settings)
    assert clock.status(_ny(11, 0)) == MarketStatus.CLOSED
    assert clock.status(_ny(10, 0, date(2025, 1, 3))) == MarketStatus.OPEN
    assert clock.status(_ny(9, 59, date(2025, 1, 3))) == MarketStatus.NO_TRADE_ZONE
