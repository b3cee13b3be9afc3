"""Typed failures of the trading discipline engine."""

from __future__ import annotations


class TradeGuardError(Exception):
    """Base error."""


class ValidationError(TradeGuardError):
    """Sizing inputs are invalid. Fixed by correcting the inputs."""

    def __init__(self, message: str, errors: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.errors = errors or (message,)


class LockedError(TradeGuardError):
    """Circuit breaker is locked until the next trading day."""


class MarketClosedError(TradeGuardError):
    """Current time is outside the tradable window."""


class AlreadyExecutingError(TradeGuardError):
    """An execution for this session is already in flight."""


class BrokerError(TradeGuardError):
    """The broker adapter failed. No fill is assumed."""


class RejectedError(TradeGuardError):
    """Preflight checklist submitted incomplete."""


class PreflightRequiredError(TradeGuardError):
    """The session has no confirmed preflight checklist."""


class PreflightAlreadyConfirmedError(TradeGuardError):
    """The preflight record is immutable once written."""


class ActivePositionError(TradeGuardError):
    """A position is already open for this session."""


class NoActivePositionError(TradeGuardError):
    """There is no open position to close."""


class SessionStoreError(TradeGuardError):
    """A persisted session snapshot cannot be read."""
