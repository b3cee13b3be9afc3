"""Preflight readiness checklist."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from trade_guard.errors import PreflightAlreadyConfirmedError, RejectedError
from trade_guard.types import PreflightAnswers, PreflightRecord


class PreflightState(str, Enum):
    NOT_STARTED = "not_started"
    PARTIALLY_CONFIRMED = "partially_confirmed"
    CONFIRMED = "confirmed"


class PreFlightGate:
    """Collects the three readiness answers and confirms them atomically.

    Answers may be toggled one at a time while the checklist is open, but a
    session only becomes active through ``confirm``. A written record is
    never replaced; a new checklist needs a new session.
    """

    def __init__(self, record: PreflightRecord | None = None) -> None:
        self._record = record
        if record is None:
            self._answers = PreflightAnswers()
        else:
            self._answers = PreflightAnswers(
                calm_focused=record.calm_focused,
                loss_limit_defined=record.loss_limit_defined,
                risk_accepted=record.risk_accepted,
            )

    @property
    def answers(self) -> PreflightAnswers:
        return self._answers

    @property
    def record(self) -> PreflightRecord | None:
        return self._record

    @property
    def state(self) -> PreflightState:
        if self._record is not None:
            return PreflightState.CONFIRMED
        if self._answers.any_answered:
            return PreflightState.PARTIALLY_CONFIRMED
        return PreflightState.NOT_STARTED

    def answer(self, name: str, value: bool) -> PreflightAnswers:
        if self._record is not None:
            raise PreflightAlreadyConfirmedError("preflight_already_confirmed")
        self._answers = self._answers.with_answer(name, value)
        return self._answers

    def confirm(
        self,
        trader_id: str,
        now: datetime,
        answers: PreflightAnswers | None = None,
    ) -> PreflightRecord:
        """Write the record if every answer is affirmative."""
        if self._record is not None:
            raise PreflightAlreadyConfirmedError("preflight_already_confirmed")
        submitted = answers if answers is not None else self._answers
        self._answers = submitted
        self._record = confirm(submitted, trader_id, now)
        return self._record


def confirm(answers: PreflightAnswers, trader_id: str, now: datetime) -> PreflightRecord:
    """Single atomic transition from answers to an immutable record."""
    if not answers.complete:
        raise RejectedError("incomplete")
    return PreflightRecord(
        calm_focused=answers.calm_focused,
        loss_limit_defined=answers.loss_limit_defined,
        risk_accepted=answers.risk_accepted,
        confirmed_at=now,
        confirmed_by=trader_id,
    )
