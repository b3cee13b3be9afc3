"""Execution guard: the only path from a sized candidate to the broker."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from trade_guard.errors import (
    ActivePositionError,
    AlreadyExecutingError,
    BrokerError,
    LockedError,
    MarketClosedError,
    NoActivePositionError,
    PreflightRequiredError,
    TradeGuardError,
    ValidationError,
)
from trade_guard.events import EventBus
from trade_guard.exec.broker import BrokerAdapter, OrderRequest, OrderResult
from trade_guard.market.clock import MarketClock
from trade_guard.market.feed import MarketDataFeed
from trade_guard.risk.circuit_breaker import CircuitBreaker
from trade_guard.types import (
    CircuitBreakerState,
    CloseResult,
    Direction,
    DisabledKind,
    DisabledReason,
    ExecutionResult,
    ExitPlan,
    MarketStatus,
    PositionRecord,
    PositionSizeResult,
    TradingSession,
)
from trade_guard.utils.logging import get_logger, log_order_execution

_REASON_ERRORS: dict[DisabledKind, type[TradeGuardError]] = {
    DisabledKind.LOCKED: LockedError,
    DisabledKind.PREFLIGHT: PreflightRequiredError,
    DisabledKind.NO_TRADE_ZONE: MarketClosedError,
    DisabledKind.MARKET_CLOSED: MarketClosedError,
    DisabledKind.PRE_MARKET: MarketClosedError,
    DisabledKind.ACTIVE_POSITION: ActivePositionError,
    DisabledKind.INVALID_SIZING: ValidationError,
}


def disabled_reason(
    session: TradingSession,
    market_status: MarketStatus,
    sizing: PositionSizeResult,
    circuit_breaker: CircuitBreakerState,
) -> DisabledReason | None:
    """First blocking condition in display priority order, or None."""
    if circuit_breaker.is_locked:
        lock_reason = circuit_breaker.lock_reason or "circuit breaker"
        return DisabledReason(DisabledKind.LOCKED, f"trading locked: {lock_reason}")
    if session.preflight is None:
        return DisabledReason(DisabledKind.PREFLIGHT, "preflight checklist not confirmed")
    if market_status == MarketStatus.NO_TRADE_ZONE:
        return DisabledReason(DisabledKind.NO_TRADE_ZONE, "market settling")
    if market_status == MarketStatus.CLOSED:
        return DisabledReason(DisabledKind.MARKET_CLOSED, "market closed")
    if market_status == MarketStatus.PRE_MARKET:
        return DisabledReason(DisabledKind.PRE_MARKET, "pre-market")
    if session.has_active_position:
        return DisabledReason(DisabledKind.ACTIVE_POSITION, "position already open")
    if not sizing.is_valid:
        return DisabledReason(DisabledKind.INVALID_SIZING, sizing.errors[0])
    return None


def can_execute(
    session: TradingSession,
    market_status: MarketStatus,
    sizing: PositionSizeResult,
    circuit_breaker: CircuitBreakerState,
) -> bool:
    return disabled_reason(session, market_status, sizing, circuit_breaker) is None


@contextmanager
def _execution_slot(session: TradingSession) -> Iterator[None]:
    """Hold the session's single in-flight slot; released on every exit path."""
    if session.execution_in_flight:
        raise AlreadyExecutingError("execution_already_in_flight")
    session.execution_in_flight = True
    try:
        yield
    finally:
        session.execution_in_flight = False


class ExecutionGuard:
    """Composes clock, breaker and sizing checks around broker submission."""

    def __init__(
        self,
        *,
        clock: MarketClock,
        breaker: CircuitBreaker,
        broker: BrokerAdapter,
        feed: MarketDataFeed,
        bus: EventBus,
        runner_trailing_rule: str,
        broker_timeout_seconds: float,
    ) -> None:
        self._clock = clock
        self._breaker = breaker
        self._broker = broker
        self._feed = feed
        self._bus = bus
        self._runner_trailing_rule = runner_trailing_rule
        self._broker_timeout = broker_timeout_seconds
        self._logger = get_logger("trade_guard.exec.guard")

    def can_execute(
        self,
        session: TradingSession,
        market_status: MarketStatus,
        sizing: PositionSizeResult,
        circuit_breaker: CircuitBreakerState,
    ) -> bool:
        return can_execute(session, market_status, sizing, circuit_breaker)

    def disabled_reason(
        self,
        session: TradingSession,
        sizing: PositionSizeResult,
        now: datetime | None = None,
    ) -> DisabledReason | None:
        """Current blocking reason for a session, reading the feed clock by default."""
        now = now or self._feed.now()
        return disabled_reason(
            session,
            self._clock.status(now),
            sizing,
            session.circuit_breaker,
        )

    async def execute(
        self,
        session: TradingSession,
        symbol: str,
        direction: Direction,
        sizing: PositionSizeResult,
    ) -> ExecutionResult:
        """Submit exactly one order for the sized candidate.

        Raises the typed error of the first blocking condition. A broker
        failure or timeout leaves the session without a position; the caller
        must re-query the order status instead of assuming it was not placed.
        """
        now = self._feed.now()
        breaker_locked = self._breaker.is_locked(session.circuit_breaker, now)
        if breaker_locked:
            self._blocked(session, DisabledKind.LOCKED, session.circuit_breaker.lock_reason or "")
            raise LockedError(f"trading locked: {session.circuit_breaker.lock_reason}")

        with _execution_slot(session):
            reason = disabled_reason(session, self._clock.status(now), sizing, session.circuit_breaker)
            if reason is not None:
                self._blocked(session, reason.kind, reason.message)
                error_cls = _REASON_ERRORS[reason.kind]
                if error_cls is ValidationError:
                    raise ValidationError(reason.message, sizing.errors)
                raise error_cls(reason.message)
            if Direction(direction) is not sizing.direction:
                raise ValidationError("direction does not match sizing")

            request = OrderRequest(
                symbol=symbol.upper(),
                direction=sizing.direction,
                shares=sizing.shares,
                stop_loss_price=sizing.stop_loss_price,
                target1_price=sizing.target1_price,
                target1_shares=sizing.target1_shares,
            )
            result = await self._submit(session, request)

            exit_plan = ExitPlan(
                target1_price=sizing.target1_price,
                target1_shares=sizing.target1_shares,
                runner_shares=sizing.runner_shares,
                runner_trailing_rule=self._runner_trailing_rule,
            )
            position = PositionRecord(
                symbol=request.symbol,
                direction=request.direction,
                shares=request.shares,
                entry_price=result.filled_price or sizing.entry_price,
                stop_loss_price=sizing.stop_loss_price,
                exit_plan=exit_plan,
                order_id=result.order_id,
                opened_at=self._feed.now(),
            )
            session.position = position
            session.has_active_position = True

        log_order_execution(
            self._logger,
            symbol=request.symbol,
            side=request.direction.value,
            quantity=request.shares,
            price=position.entry_price,
            order_id=result.order_id,
            status=result.status,
            session_id=session.session_id,
        )
        snapshot = session.to_snapshot()
        self._bus.publish("order_submitted", session.session_id, snapshot["position"])
        self._bus.publish("session_snapshot", session.session_id, snapshot)
        return ExecutionResult(
            order_id=result.order_id,
            status=result.status,
            filled_price=result.filled_price,
            position=position,
            session_snapshot=snapshot,
        )

    def close_position(
        self,
        session: TradingSession,
        exit_price: float,
        now: datetime | None = None,
    ) -> CloseResult:
        """Record the exit of the active position and feed the breaker."""
        position = session.position
        if not session.has_active_position or position is None:
            raise NoActivePositionError("no_open_position")
        if exit_price <= 0:
            raise ValidationError("exit price must be positive")

        pnl = realized_pnl(position.direction, position.entry_price, exit_price, position.shares)
        session.position = None
        session.has_active_position = False
        self._bus.publish(
            "position_closed",
            session.session_id,
            {
                "symbol": position.symbol,
                "direction": position.direction.value,
                "shares": position.shares,
                "entry_price": position.entry_price,
                "exit_price": float(exit_price),
                "realized_pnl": pnl,
                "order_id": position.order_id,
            },
        )
        breaker = self.record_trade_result(session, pnl, now)
        return CloseResult(
            symbol=position.symbol,
            direction=position.direction,
            shares=position.shares,
            entry_price=position.entry_price,
            exit_price=float(exit_price),
            realized_pnl=pnl,
            circuit_breaker=breaker,
        )

    def record_trade_result(
        self,
        session: TradingSession,
        pnl: float,
        now: datetime | None = None,
    ) -> CircuitBreakerState:
        """Apply a closed trade's PnL to the session's breaker and persist it."""
        now = now or self._feed.now()
        was_locked = session.circuit_breaker.is_locked
        session.circuit_breaker = self._breaker.record_trade_result(
            session.circuit_breaker, pnl, now
        )
        if session.circuit_breaker.is_locked and not was_locked:
            self._bus.publish(
                "breaker_locked",
                session.session_id,
                {
                    "lock_reason": session.circuit_breaker.lock_reason,
                    "consecutive_losses": session.circuit_breaker.consecutive_losses,
                    "daily_loss_total": session.circuit_breaker.daily_loss_total,
                },
            )
        self._bus.publish("session_snapshot", session.session_id, session.to_snapshot())
        return session.circuit_breaker

    async def _submit(self, session: TradingSession, request: OrderRequest) -> OrderResult:
        try:
            result = await asyncio.wait_for(
                self._broker.submit_order(request),
                timeout=self._broker_timeout,
            )
        except asyncio.TimeoutError as exc:
            self._order_failed(session, request, "broker_timeout")
            raise BrokerError("broker call timed out; re-query order status") from exc
        except BrokerError as exc:
            self._order_failed(session, request, str(exc))
            raise
        except asyncio.CancelledError:
            self._logger.warning(
                "order_submission_cancelled",
                session_id=session.session_id,
                symbol=request.symbol,
            )
            raise
        except Exception as exc:
            self._order_failed(session, request, str(exc))
            raise BrokerError(f"broker_failure: {exc}") from exc

        if result.status == "rejected":
            self._order_failed(session, request, f"order_rejected: {result.order_id}")
            raise BrokerError(f"order_rejected: {result.order_id}")
        return result

    def _order_failed(self, session: TradingSession, request: OrderRequest, error: str) -> None:
        self._logger.error(
            "order_submission_failed",
            session_id=session.session_id,
            symbol=request.symbol,
            shares=request.shares,
            error=error,
        )
        self._bus.publish(
            "order_failed",
            session.session_id,
            {"symbol": request.symbol, "shares": request.shares, "error": error},
        )

    def _blocked(self, session: TradingSession, kind: DisabledKind, message: str) -> None:
        self._logger.info(
            "execution_blocked",
            session_id=session.session_id,
            reason=kind.value,
            message=message,
        )
        self._bus.publish(
            "execution_blocked",
            session.session_id,
            {"reason": kind.value, "message": message},
        )


def realized_pnl(direction: Direction, entry_price: float, exit_price: float, shares: int) -> float:
    """Closed-trade PnL; a short profits when price falls."""
    return round((exit_price - entry_price) * direction.sign * shares, 2)
