"""Intraday circuit breaker."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from trade_guard.config import Settings
from trade_guard.market.clock import MarketClock
from trade_guard.types import CircuitBreakerState
from trade_guard.utils.logging import get_logger, log_risk_event

MAX_CONSECUTIVE_LOSSES_REASON = "max consecutive losses"
DAILY_LOSS_CAP_REASON = "daily loss cap reached"


class CircuitBreaker:
    """Locks trading for the rest of the day after adverse results.

    A lock is terminal for the trading day. Later winners reset the loss
    streak but never the lock; only a new session starts unlocked.
    """

    def __init__(
        self,
        *,
        max_consecutive_losses: int,
        daily_loss_cap: float,
        clock: MarketClock,
    ) -> None:
        self._max_consecutive_losses = max_consecutive_losses
        self._daily_loss_cap = daily_loss_cap
        self._clock = clock
        self._logger = get_logger("trade_guard.risk.circuit_breaker")

    @classmethod
    def from_settings(cls, settings: Settings, clock: MarketClock) -> CircuitBreaker:
        return cls(
            max_consecutive_losses=settings.max_consecutive_losses,
            daily_loss_cap=settings.daily_loss_cap,
            clock=clock,
        )

    def record_trade_result(
        self,
        state: CircuitBreakerState,
        pnl: float,
        now: datetime,
    ) -> CircuitBreakerState:
        """Fold one closed trade into the breaker state."""
        if pnl < 0:
            updated = replace(
                state,
                consecutive_losses=state.consecutive_losses + 1,
                daily_loss_total=round(state.daily_loss_total + abs(pnl), 2),
            )
        else:
            updated = replace(state, consecutive_losses=0)

        if updated.is_locked:
            return updated

        reason = None
        if updated.consecutive_losses >= self._max_consecutive_losses:
            reason = MAX_CONSECUTIVE_LOSSES_REASON
        elif updated.daily_loss_total >= self._daily_loss_cap:
            reason = DAILY_LOSS_CAP_REASON

        if reason is None:
            return updated

        locked = replace(
            updated,
            is_locked=True,
            lock_reason=reason,
            locked_until=self._clock.end_of_day(now),
        )
        log_risk_event(
            self._logger,
            event_type="circuit_breaker_locked",
            action="block_trading_for_day",
            reason=reason,
            consecutive_losses=locked.consecutive_losses,
            daily_loss_total=locked.daily_loss_total,
        )
        return locked

    def is_locked(self, state: CircuitBreakerState, now: datetime) -> bool:
        """Whether trading is locked.

        Passing ``locked_until`` does not release the lock. The state belongs
        to a session, and a new trading day means a new session.
        """
        if (
            state.is_locked
            and state.locked_until is not None
            and self._clock.trading_date(now) >= self._clock.trading_date(state.locked_until)
        ):
            self._logger.debug(
                "circuit_breaker_stale_session",
                locked_until=state.locked_until.isoformat(),
                now=now.isoformat(),
            )
        return state.is_locked
