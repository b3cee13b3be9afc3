from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from trade_guard.market.clock import MarketClock
from trade_guard.risk.circuit_breaker import (
    DAILY_LOSS_CAP_REASON,
    MAX_CONSECUTIVE_LOSSES_REASON,
    CircuitBreaker,
)
from trade_guard.types import CircuitBreakerState

NY = ZoneInfo("America/New_York")
NOW = datetime(2025, 1, 2, 11, 0, tzinfo=NY)


def _breaker(max_losses: int = 2, cap: float = 500.0) -> CircuitBreaker:
    return CircuitBreaker(max_consecutive_losses=max_losses, daily_loss_cap=cap, clock=MarketClock())


def test_losses_accumulate_and_win_resets_streak() -> None:
    breaker = _breaker(max_losses=3)
    state = breaker.record_trade_result(CircuitBreakerState(), -50.0, NOW)
    assert state.consecutive_losses == 1
    assert state.daily_loss_total == 50.0
    state = breaker.record_trade_result(state, 120.0, NOW)
    assert state.consecutive_losses == 0
    assert state.daily_loss_total == 50.0
    assert not breaker.is_locked(state, NOW)


def test_two_consecutive_losses_lock_for_the_day() -> None:
    breaker = _breaker()
    state = CircuitBreakerState()
    for _ in range(2):
        state = breaker.record_trade_result(state, -100.0, NOW)
    assert state.is_locked
    assert state.lock_reason == MAX_CONSECUTIVE_LOSSES_REASON == "max consecutive losses"
    assert state.locked_until == datetime(2025, 1, 3, 0, 0, tzinfo=NY)
    assert breaker.is_locked(state, NOW)


def test_lock_survives_a_later_win() -> None:
    breaker = _breaker()
    state = CircuitBreakerState()
    state = breaker.record_trade_result(state, -10.0, NOW)
    state = breaker.record_trade_result(state, -10.0, NOW)
    state = breaker.record_trade_result(state, 500.0, NOW)
    assert state.consecutive_losses == 0
    assert state.is_locked
    assert state.lock_reason == MAX_CONSECUTIVE_LOSSES_REASON


def test_daily_loss_cap_locks_independently() -> None:
    breaker = _breaker(max_losses=5, cap=300.0)
    state = breaker.record_trade_result(CircuitBreakerState(), -200.0, NOW)
    state = breaker.record_trade_result(state, 50.0, NOW)
    assert not state.is_locked
    state = breaker.record_trade_result(state, -150.0, NOW)
    assert state.consecutive_losses == 1
    assert state.daily_loss_total == 350.0
    assert state.is_locked
    assert state.lock_reason == DAILY_LOSS_CAP_REASON


def test_first_lock_reason_is_kept() -> None:
    breaker = _breaker(max_losses=2, cap=150.0)
    state = breaker.record_trade_result(CircuitBreakerState(), -100.0, NOW)
    state = breaker.record_trade_result(state, -100.0, NOW)
    assert state.lock_reason == MAX_CONSECUTIVE_LOSSES_REASON
    state = breaker.record_trade_result(state, -100.0, NOW)
    assert state.lock_reason == MAX_CONSECUTIVE_LOSSES_REASON
    assert state.daily_loss_total == 300.0


def test_lock_does_not_expire_with_time() -> None:
    breaker = _breaker()
    state = CircuitBreakerState()
    state = breaker.record_trade_result(state, -1.0, NOW)
    state = breaker.record_trade_result(state, -1.0, NOW)
    next_day = datetime(2025, 1, 3, 10, 0, tzinfo=NY)
    assert breaker.is_locked(state, next_day)


def test_input_state_is_not_mutated() -> None:
    breaker = _breaker()
    original = CircuitBreakerState()
    breaker.record_trade_result(original, -10.0, NOW)
    assert original == CircuitBreakerState()


def test_reaching_daily_cap_exactly_locks() -> None:
    breaker = _breaker(max_losses=5, cap=300.0)
    state = breaker.record_trade_result(CircuitBreakerState(), -100.0, NOW)
    state = breaker.record_trade_result(state, -200.0, NOW)
    assert state.daily_loss_total == 300.0
    assert state.is_locked
    assert state.lock_reason == DAILY_LOSS_CAP_REASON
