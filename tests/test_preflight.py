from __future__ import annotations

import dataclasses
from datetime import UTC, datetime

import pytest

from trade_guard.errors import PreflightAlreadyConfirmedError, RejectedError
from trade_guard.session.preflight import PreFlightGate, PreflightState, confirm
from trade_guard.types import PreflightAnswers

NOW = datetime(2025, 1, 2, 13, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "answers",
    [
        PreflightAnswers(calm_focused=False, loss_limit_defined=True, risk_accepted=True),
        PreflightAnswers(calm_focused=True, loss_limit_defined=False, risk_accepted=True),
        PreflightAnswers(calm_focused=True, loss_limit_defined=True, risk_accepted=False),
        PreflightAnswers(),
    ],
)
def test_any_false_answer_is_rejected(answers: PreflightAnswers) -> None:
    with pytest.raises(RejectedError, match="incomplete"):
        confirm(answers, "trader-1", NOW)


def test_complete_answers_write_matching_record() -> None:
    answers = PreflightAnswers(calm_focused=True, loss_limit_defined=True, risk_accepted=True)
    record = confirm(answers, "trader-1", NOW)
    assert record.calm_focused is True
    assert record.loss_limit_defined is True
    assert record.risk_accepted is True
    assert record.confirmed_at == NOW
    assert record.confirmed_by == "trader-1"
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.risk_accepted = False  # type: ignore[misc]


def test_gate_states_follow_answers() -> None:
    gate = PreFlightGate()
    assert gate.state == PreflightState.NOT_STARTED
    gate.answer("calm_focused", True)
    gate.answer("loss_limit_defined", True)
    assert gate.state == PreflightState.PARTIALLY_CONFIRMED

    with pytest.raises(RejectedError):
        gate.confirm("trader-1", NOW)
    assert gate.state == PreflightState.PARTIALLY_CONFIRMED
    assert gate.record is None

    gate.answer("risk_accepted", True)
    # All three true is still not confirmed until submitted.
    assert gate.state == PreflightState.PARTIALLY_CONFIRMED
    record = gate.confirm("trader-1", NOW)
    assert gate.state == PreflightState.CONFIRMED
    assert gate.record is record


def test_confirmed_gate_is_immutable() -> None:
    gate = PreFlightGate()
    gate.confirm("trader-1", NOW, PreflightAnswers(True, True, True))
    with pytest.raises(PreflightAlreadyConfirmedError):
        gate.answer("calm_focused", False)
    with pytest.raises(PreflightAlreadyConfirmedError):
        gate.confirm("trader-1", NOW, PreflightAnswers(True, True, True))


def test_gate_restored_from_record() -> None:
    record = confirm(PreflightAnswers(True, True, True), "trader-1", NOW)
    gate = PreFlightGate(record)
    assert gate.state == PreflightState.CONFIRMED
    assert gate.answers.complete


def test_unknown_question_is_rejected() -> None:
    with pytest.raises(KeyError):
        PreFlightGate().answer("feeling_lucky", True)
