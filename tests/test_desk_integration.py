from __future__ import annotations

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from trade_guard.config import Settings
from trade_guard.desk import TradingDesk
from trade_guard.errors import LockedError, RejectedError
from trade_guard.exec.paper import PaperBroker
from trade_guard.market.feed import StaticMarketData
from trade_guard.types import Direction, DisabledKind, MarketStatus, PreflightAnswers

NY = ZoneInfo("America/New_York")


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _desk(tmp_path: object, clock: _Clock) -> tuple[TradingDesk, StaticMarketData]:
    settings = Settings(session_dir=tmp_path / "sessions", journal_dir=tmp_path / "journal")
    feed = StaticMarketData({"AAPL": 50.0}, clock=clock)
    desk = TradingDesk(settings, broker=PaperBroker(feed), feed=feed)
    return desk, feed


def test_full_trading_day(tmp_path: object) -> None:
    clock = _Clock(datetime(2025, 1, 2, 9, 40, tzinfo=NY))
    desk, feed = _desk(tmp_path, clock)
    session = desk.open_session("trader-1")

    evaluation = desk.evaluate(session, "AAPL", 49.0, Direction.LONG)
    assert evaluation.reason is not None
    assert evaluation.reason.kind == DisabledKind.PREFLIGHT

    with pytest.raises(RejectedError):
        desk.confirm_preflight(session, PreflightAnswers(True, False, True))
    desk.confirm_preflight(session, PreflightAnswers(True, True, True))

    evaluation = desk.evaluate(session, "AAPL", 49.0, Direction.LONG)
    assert evaluation.market_status == MarketStatus.NO_TRADE_ZONE
    assert not evaluation.can_execute
    assert evaluation.reason is not None and evaluation.reason.message == "market settling"

    clock.now = datetime(2025, 1, 2, 10, 0, tzinfo=NY)
    evaluation = desk.evaluate(session, "AAPL", 49.0, Direction.LONG)
    assert evaluation.can_execute
    assert evaluation.sizing.shares == 200

    result = asyncio.run(desk.execute(session, evaluation))
    assert result.position.shares == 200

    feed.set_price("AAPL", 49.0)
    first = desk.close(session)
    assert first.realized_pnl == pytest.approx(-200.0)

    evaluation = desk.evaluate(session, "AAPL", 48.0, Direction.LONG)
    asyncio.run(desk.execute(session, evaluation))
    second = desk.close(session, 48.5)
    assert second.circuit_breaker.is_locked

    evaluation = desk.evaluate(session, "AAPL", 48.0, Direction.LONG)
    assert evaluation.reason is not None
    assert evaluation.reason.message == "trading locked: max consecutive losses"
    with pytest.raises(LockedError):
        asyncio.run(desk.execute(session, evaluation))

    events = [row["event_type"] for row in desk.journal.load_recent(100)]
    assert events.count("order_submitted") == 2
    assert "breaker_locked" in events
    assert "preflight_confirmed" in events


def test_reload_same_day_keeps_lock(tmp_path: object) -> None:
    clock = _Clock(datetime(2025, 1, 2, 11, 0, tzinfo=NY))
    desk, _ = _desk(tmp_path, clock)
    session = desk.open_session("trader-1")
    desk.confirm_preflight(session, PreflightAnswers(True, True, True))
    desk.guard.record_trade_result(session, -50.0)
    desk.guard.record_trade_result(session, -50.0)

    restarted, _ = _desk(tmp_path, clock)
    reloaded = restarted.open_session("trader-1")
    assert reloaded.session_id == session.session_id
    assert reloaded.circuit_breaker.is_locked
    assert reloaded.preflight is not None

    clock.now = datetime(2025, 1, 3, 11, 0, tzinfo=NY)
    next_day = restarted.open_session("trader-1")
    assert next_day.session_id != session.session_id
    assert not next_day.circuit_breaker.is_locked
    assert next_day.preflight is None


def test_reopening_same_day_does_not_restart_session(tmp_path: object) -> None:
    clock = _Clock(datetime(2025, 1, 2, 11, 0, tzinfo=NY))
    desk, _ = _desk(tmp_path, clock)
    first = desk.open_session("trader-1")
    second = desk.open_session("trader-1")
    assert second.session_id == first.session_id

    events = [row["event_type"] for row in desk.journal.load_recent(100)]
    assert events.count("session_started") == 1
