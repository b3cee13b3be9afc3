"""Trading desk: wires the discipline engine for one trader's day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from trade_guard.config import Settings
from trade_guard.errors import RejectedError
from trade_guard.events import EventBus
from trade_guard.exec.broker import BrokerAdapter
from trade_guard.exec.guard import ExecutionGuard
from trade_guard.journal.store import JournalStore
from trade_guard.market.clock import MarketClock
from trade_guard.market.feed import MarketDataFeed
from trade_guard.risk.circuit_breaker import CircuitBreaker
from trade_guard.risk.sizing import RiskCalculator
from trade_guard.session.preflight import PreFlightGate
from trade_guard.session.store import SessionStore
from trade_guard.types import (
    CloseResult,
    Direction,
    DisabledReason,
    ExecutionResult,
    MarketStatus,
    PositionSizeResult,
    PreflightAnswers,
    PreflightRecord,
    TradingSession,
)
from trade_guard.utils.logging import get_logger, log_preflight


@dataclass(frozen=True, slots=True)
class TradeEvaluation:
    """What the trader sees before confirming a trade."""

    symbol: str
    market_status: MarketStatus
    sizing: PositionSizeResult
    can_execute: bool
    reason: DisabledReason | None


class TradingDesk:
    """Session lifecycle, sizing, gating and execution for a trader."""

    def __init__(
        self,
        settings: Settings,
        *,
        broker: BrokerAdapter,
        feed: MarketDataFeed,
        bus: EventBus | None = None,
    ) -> None:
        self._settings = settings
        self._feed = feed
        self._bus = bus or EventBus()
        self._logger = get_logger("trade_guard.desk")

        self.clock = MarketClock.from_settings(settings)
        self.calculator = RiskCalculator.from_settings(settings)
        self.breaker = CircuitBreaker.from_settings(settings, self.clock)
        self.sessions = SessionStore(settings.session_dir)
        self.journal = JournalStore(settings.journal_dir)
        self._bus.subscribe(self.sessions.handle_event)
        self._bus.subscribe(self.journal.handle_event)

        self.guard = ExecutionGuard(
            clock=self.clock,
            breaker=self.breaker,
            broker=broker,
            feed=feed,
            bus=self._bus,
            runner_trailing_rule=settings.runner_trailing_rule,
            broker_timeout_seconds=settings.broker_timeout_seconds,
        )

    @property
    def bus(self) -> EventBus:
        return self._bus

    def open_session(self, trader_id: str, now: datetime | None = None) -> TradingSession:
        """Today's session for the trader; reloads instead of resetting."""
        now = now or self._feed.now()
        trading_date = self.clock.trading_date(now)
        session, created = self.sessions.load_or_create(trader_id, trading_date)
        if not created:
            return session
        self._bus.publish(
            "session_started",
            session.session_id,
            {"trader_id": trader_id, "trading_date": trading_date.isoformat()},
        )
        return session

    def confirm_preflight(
        self,
        session: TradingSession,
        answers: PreflightAnswers,
        now: datetime | None = None,
    ) -> PreflightRecord:
        now = now or self._feed.now()
        gate = PreFlightGate(session.preflight)
        try:
            record = gate.confirm(session.trader_id, now, answers)
        except RejectedError:
            log_preflight(
                self._logger,
                trader_id=session.trader_id,
                session_id=session.session_id,
                accepted=False,
            )
            raise
        session.preflight = record
        log_preflight(
            self._logger,
            trader_id=session.trader_id,
            session_id=session.session_id,
            accepted=True,
        )
        snapshot = session.to_snapshot()
        self._bus.publish("preflight_confirmed", session.session_id, snapshot["preflight"])
        self._bus.publish("session_snapshot", session.session_id, snapshot)
        return record

    def size(
        self,
        entry_price: float,
        stop_loss_price: float,
        direction: Direction,
        account_equity: float | None = None,
    ) -> PositionSizeResult:
        equity = self._settings.account_equity if account_equity is None else account_equity
        return self.calculator.size(equity, entry_price, stop_loss_price, direction)

    def evaluate(
        self,
        session: TradingSession,
        symbol: str,
        stop_loss_price: float,
        direction: Direction,
        *,
        entry_price: float | None = None,
        account_equity: float | None = None,
        now: datetime | None = None,
    ) -> TradeEvaluation:
        """Fresh sizing at the current quote plus the gate verdict."""
        now = now or self._feed.now()
        entry = self._feed.current_price(symbol) if entry_price is None else entry_price
        sizing = self.size(entry, stop_loss_price, direction, account_equity)
        status = self.clock.status(now)
        reason = self.guard.disabled_reason(session, sizing, now)
        return TradeEvaluation(
            symbol=symbol.upper(),
            market_status=status,
            sizing=sizing,
            can_execute=reason is None,
            reason=reason,
        )

    async def execute(self, session: TradingSession, evaluation: TradeEvaluation) -> ExecutionResult:
        return await self.guard.execute(
            session,
            evaluation.symbol,
            evaluation.sizing.direction,
            evaluation.sizing,
        )

    def close(
        self,
        session: TradingSession,
        exit_price: float | None = None,
        now: datetime | None = None,
    ) -> CloseResult:
        """Close the active position at ``exit_price`` or the current quote."""
        if exit_price is None and session.position is not None:
            exit_price = self._feed.current_price(session.position.symbol)
        return self.guard.close_position(session, exit_price or 0.0, now)
