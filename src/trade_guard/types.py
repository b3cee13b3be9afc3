"""Shared domain types for the trading discipline engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class Direction(str, Enum):
    """Trade direction."""

    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1


class MarketStatus(str, Enum):
    """Market phase derived from wall-clock time. Never stored."""

    PRE_MARKET = "pre_market"
    OPEN = "open"
    NO_TRADE_ZONE = "no_trade_zone"
    CLOSED = "closed"


class DisabledKind(str, Enum):
    """Why execution is currently disabled, in display priority order."""

    LOCKED = "locked"
    PREFLIGHT = "preflight"
    NO_TRADE_ZONE = "no_trade_zone"
    MARKET_CLOSED = "market_closed"
    PRE_MARKET = "pre_market"
    ACTIVE_POSITION = "active_position"
    INVALID_SIZING = "invalid_sizing"


@dataclass(frozen=True, slots=True)
class DisabledReason:
    """The single reason shown to the trader when execution is disabled."""

    kind: DisabledKind
    message: str


@dataclass(frozen=True, slots=True)
class PositionSizeResult:
    """Deterministic sizing for one candidate trade.

    Produced only by the risk calculator. Frozen, so a trader cannot edit
    the share count; changing entry, stop or direction means recomputing.
    """

    shares: int
    entry_price: float
    stop_loss_price: float
    target1_price: float
    target1_shares: int
    runner_shares: int
    max_risk_amount: float
    direction: Direction
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def per_share_risk(self) -> float:
        return abs(self.entry_price - self.stop_loss_price)


@dataclass(frozen=True, slots=True)
class PreflightAnswers:
    """The three checklist answers as submitted together."""

    calm_focused: bool = False
    loss_limit_defined: bool = False
    risk_accepted: bool = False

    @property
    def complete(self) -> bool:
        return self.calm_focused and self.loss_limit_defined and self.risk_accepted

    @property
    def any_answered(self) -> bool:
        return self.calm_focused or self.loss_limit_defined or self.risk_accepted

    def with_answer(self, name: str, value: bool) -> PreflightAnswers:
        if name not in PREFLIGHT_QUESTIONS:
            raise KeyError(f"unknown_preflight_question: {name}")
        values = {key: getattr(self, key) for key in PREFLIGHT_QUESTIONS}
        values[name] = bool(value)
        return PreflightAnswers(**values)


PREFLIGHT_QUESTIONS = ("calm_focused", "loss_limit_defined", "risk_accepted")


@dataclass(frozen=True, slots=True)
class PreflightRecord:
    """Written once per session when the checklist is confirmed."""

    calm_focused: bool
    loss_limit_defined: bool
    risk_accepted: bool
    confirmed_at: datetime
    confirmed_by: str


@dataclass(frozen=True, slots=True)
class CircuitBreakerState:
    """Intraday loss tracking. Transitions return a new value."""

    consecutive_losses: int = 0
    daily_loss_total: float = 0.0
    is_locked: bool = False
    lock_reason: str | None = None
    locked_until: datetime | None = None


@dataclass(frozen=True, slots=True)
class ExitPlan:
    """Automated exit instructions fixed at execution time."""

    target1_price: float
    target1_shares: int
    runner_shares: int
    runner_trailing_rule: str
    breakeven_after_target1: bool = True


@dataclass(frozen=True, slots=True)
class PositionRecord:
    """The single open position of a session."""

    symbol: str
    direction: Direction
    shares: int
    entry_price: float
    stop_loss_price: float
    exit_plan: ExitPlan
    order_id: str
    opened_at: datetime


@dataclass(slots=True)
class TradingSession:
    """One trader, one trading day."""

    session_id: str
    trader_id: str
    trading_date: date
    preflight: PreflightRecord | None = None
    circuit_breaker: CircuitBreakerState = field(default_factory=CircuitBreakerState)
    has_active_position: bool = False
    position: PositionRecord | None = None
    execution_in_flight: bool = False

    @property
    def is_active(self) -> bool:
        return self.preflight is not None

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-safe snapshot for external storage. Runtime flags are excluded."""
        return {
            "session_id": self.session_id,
            "trader_id": self.trader_id,
            "trading_date": self.trading_date.isoformat(),
            "preflight": _preflight_to_dict(self.preflight),
            "circuit_breaker": _breaker_to_dict(self.circuit_breaker),
            "has_active_position": self.has_active_position,
            "position": _position_to_dict(self.position),
        }

    @classmethod
    def from_snapshot(cls, raw: dict[str, Any]) -> TradingSession:
        preflight_raw = raw.get("preflight")
        breaker_raw = raw.get("circuit_breaker") or {}
        position_raw = raw.get("position")

        preflight = None
        if isinstance(preflight_raw, dict):
            preflight = PreflightRecord(
                calm_focused=bool(preflight_raw["calm_focused"]),
                loss_limit_defined=bool(preflight_raw["loss_limit_defined"]),
                risk_accepted=bool(preflight_raw["risk_accepted"]),
                confirmed_at=datetime.fromisoformat(preflight_raw["confirmed_at"]),
                confirmed_by=str(preflight_raw["confirmed_by"]),
            )

        locked_until = breaker_raw.get("locked_until")
        breaker = CircuitBreakerState(
            consecutive_losses=int(breaker_raw.get("consecutive_losses", 0)),
            daily_loss_total=float(breaker_raw.get("daily_loss_total", 0.0)),
            is_locked=bool(breaker_raw.get("is_locked", False)),
            lock_reason=breaker_raw.get("lock_reason"),
            locked_until=datetime.fromisoformat(locked_until) if locked_until else None,
        )

        position = None
        if isinstance(position_raw, dict):
            plan_raw = position_raw["exit_plan"]
            position = PositionRecord(
                symbol=str(position_raw["symbol"]),
                direction=Direction(position_raw["direction"]),
                shares=int(position_raw["shares"]),
                entry_price=float(position_raw["entry_price"]),
                stop_loss_price=float(position_raw["stop_loss_price"]),
                exit_plan=ExitPlan(**plan_raw),
                order_id=str(position_raw["order_id"]),
                opened_at=datetime.fromisoformat(position_raw["opened_at"]),
            )

        return cls(
            session_id=str(raw["session_id"]),
            trader_id=str(raw["trader_id"]),
            trading_date=date.fromisoformat(raw["trading_date"]),
            preflight=preflight,
            circuit_breaker=breaker,
            has_active_position=bool(raw.get("has_active_position", False)),
            position=position,
        )


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of a successful execution."""

    order_id: str
    status: str
    filled_price: float | None
    position: PositionRecord
    session_snapshot: dict[str, Any]


@dataclass(frozen=True, slots=True)
class CloseResult:
    """Outcome of closing the active position."""

    symbol: str
    direction: Direction
    shares: int
    entry_price: float
    exit_price: float
    realized_pnl: float
    circuit_breaker: CircuitBreakerState


def _preflight_to_dict(record: PreflightRecord | None) -> dict[str, Any] | None:
    if record is None:
        return None
    payload = asdict(record)
    payload["confirmed_at"] = record.confirmed_at.isoformat()
    return payload


def _breaker_to_dict(state: CircuitBreakerState) -> dict[str, Any]:
    payload = asdict(state)
    payload["locked_until"] = state.locked_until.isoformat() if state.locked_until else None
    return payload


def _position_to_dict(position: PositionRecord | None) -> dict[str, Any] | None:
    if position is None:
        return None
    payload = asdict(position)
    payload["direction"] = position.direction.value
    payload["opened_at"] = position.opened_at.isoformat()
    return payload
