from __future__ import annotations

import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from click.testing import CliRunner

from trade_guard.config import reload_settings
from trade_guard.main import cli
from trade_guard.market.feed import StaticMarketData

FIXED_NOW = datetime(2025, 1, 2, 11, 0, tzinfo=ZoneInfo("America/New_York"))


class _FixedClockFeed(StaticMarketData):
    def __init__(self, prices: dict[str, float] | None = None, **kwargs: object) -> None:
        super().__init__(prices, clock=lambda: FIXED_NOW)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: object) -> None:
    monkeypatch.setenv("SESSION_DIR", str(tmp_path / "sessions"))
    monkeypatch.setenv("JOURNAL_DIR", str(tmp_path / "journal"))
    monkeypatch.setenv("MODE", "paper")
    monkeypatch.setattr("trade_guard.main.StaticMarketData", _FixedClockFeed)
    reload_settings()


def test_cli_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "trade-guard version" in result.output


def test_cli_size_reference_scenario() -> None:
    result = CliRunner().invoke(cli, ["size", "--entry", "50", "--stop", "49", "--equity", "10000"])
    assert result.exit_code == 0
    assert "Shares: 200" in result.output
    assert "Target 1: 51.00 x 100 shares" in result.output


def test_cli_size_invalid_exits_non_zero() -> None:
    result = CliRunner().invoke(cli, ["size", "--entry", "50", "--stop", "50"])
    assert result.exit_code == 1
    assert "stop must differ from entry" in result.output


def test_cli_trade_requires_preflight() -> None:
    result = CliRunner().invoke(
        cli, ["trade", "-t", "trader-1", "-s", "AAPL", "--price", "50", "--stop", "49", "--yes"]
    )
    assert result.exit_code == 1
    assert "preflight checklist not confirmed" in result.output


def test_cli_incomplete_preflight_is_rejected() -> None:
    result = CliRunner().invoke(cli, ["preflight", "-t", "trader-1", "--calm", "--loss-limit"])
    assert result.exit_code == 1
    assert "incomplete" in result.output


def test_cli_trading_flow() -> None:
    runner = CliRunner()
    confirmed = runner.invoke(
        cli, ["preflight", "-t", "trader-1", "--calm", "--loss-limit", "--accept-risk"]
    )
    assert confirmed.exit_code == 0, confirmed.output

    traded = runner.invoke(
        cli, ["trade", "-t", "trader-1", "-s", "AAPL", "--price", "50", "--stop", "49", "--yes"]
    )
    assert traded.exit_code == 0, traded.output
    assert "Runner: 100 shares" in traded.output

    again = runner.invoke(
        cli, ["trade", "-t", "trader-1", "-s", "AAPL", "--price", "50", "--stop", "49", "--yes"]
    )
    assert again.exit_code == 1
    assert "position already open" in again.output

    closed = runner.invoke(cli, ["close", "-t", "trader-1", "--exit-price", "49"])
    assert closed.exit_code == 0, closed.output
    assert "PnL $-200.00" in closed.output

    shown = runner.invoke(cli, ["session", "-t", "trader-1"])
    assert shown.exit_code == 0
    snapshot = json.loads(shown.output[shown.output.index("{") :])
    assert snapshot["circuit_breaker"]["consecutive_losses"] == 1
    assert snapshot["has_active_position"] is False
