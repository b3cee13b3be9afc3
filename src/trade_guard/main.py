"""CLI entry point."""

import asyncio
import json
import sys

import click

from trade_guard import __version__
from trade_guard.config import Settings, get_settings
from trade_guard.desk import TradingDesk
from trade_guard.errors import TradeGuardError
from trade_guard.exec.broker import BrokerAdapter
from trade_guard.exec.http_broker import HttpBrokerAdapter
from trade_guard.exec.paper import PaperBroker
from trade_guard.market.clock import MarketClock
from trade_guard.market.feed import StaticMarketData
from trade_guard.risk.sizing import compute_position_size
from trade_guard.types import Direction, PositionSizeResult, PreflightAnswers
from trade_guard.utils.logging import get_logger, setup_logging

_DIRECTION = click.Choice([d.value for d in Direction])


def build_desk(settings: Settings, feed: StaticMarketData) -> TradingDesk:
    """Desk wired to the paper broker, or the REST broker in live mode."""
    broker: BrokerAdapter
    if settings.is_live_mode:
        broker = HttpBrokerAdapter(settings)
    else:
        broker = PaperBroker(feed, slippage_bps=settings.paper_slippage_bps)
    return TradingDesk(settings, broker=broker, feed=feed)


def _echo_sizing(sizing: PositionSizeResult) -> None:
    if not sizing.is_valid:
        click.echo("[INVALID] Position size")
        for error in sizing.errors:
            click.echo(f"   - {error}")
        return
    click.echo(f"[{sizing.direction.value.upper()}] Position size")
    click.echo(f"   Shares: {sizing.shares}")
    click.echo(f"   Entry: {sizing.entry_price:.2f}  Stop: {sizing.stop_loss_price:.2f}")
    click.echo(f"   Target 1: {sizing.target1_price:.2f} x {sizing.target1_shares} shares")
    click.echo(f"   Runner: {sizing.runner_shares} shares")
    click.echo(f"   Max risk: ${sizing.max_risk_amount:,.2f}")


def _fail(message: str) -> None:
    click.echo(f"[ERROR] {message}", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show the version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """Trade Guard - intraday trading discipline and execution guard.

    Preflight checklist, fixed-fractional sizing, market-time windows and a
    daily circuit breaker in front of every order.
    """
    if version:
        click.echo(f"trade-guard version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def status() -> None:
    """Show the active policy and configuration."""
    setup_logging()
    settings = get_settings()

    click.echo("=" * 50)
    click.echo("Trade Guard - Status")
    click.echo("=" * 50)
    click.echo()

    mode_marker = "[PAPER]" if settings.is_paper_mode else "[LIVE]"
    click.echo(f"{mode_marker} Mode: {settings.mode.value}")
    click.echo()

    click.echo("[Risk Policy]")
    click.echo(f"   Account equity: ${settings.account_equity:,.2f}")
    click.echo(f"   Risk per trade: {settings.risk_percent_per_trade:.2%}")
    click.echo(f"   Max consecutive losses: {settings.max_consecutive_losses}")
    click.echo(f"   Daily loss cap: ${settings.daily_loss_cap:,.2f}")
    click.echo(f"   Scale-out ratio: {settings.scale_out_ratio}")
    click.echo(f"   Target 1: {settings.reward_risk_multiple}R")
    click.echo()

    click.echo("[Market Calendar]")
    click.echo(f"   Timezone: {settings.market_timezone}")
    click.echo(
        f"   Pre-market {settings.premarket_start:%H:%M}, open {settings.market_open:%H:%M}, "
        f"close {settings.market_close:%H:%M}"
    )
    click.echo(f"   No-trade zone: {settings.no_trade_zone_minutes} min after open")
    click.echo()

    click.echo("[Storage]")
    click.echo(f"   Sessions: {settings.session_dir}")
    click.echo(f"   Journal: {settings.journal_dir}")
    click.echo()

    if settings.is_live_mode:
        missing = settings.validate_for_live()
        if missing:
            click.echo("[ERROR] Live mode configuration incomplete, missing:")
            for key in missing:
                click.echo(f"   - {key}")
        else:
            click.echo("[OK] Live mode configuration complete")
    else:
        click.echo("[INFO] Paper mode fills orders locally")

    click.echo()
    click.echo("=" * 50)


@cli.command()
def clock() -> None:
    """Show the current market phase."""
    setup_logging()
    settings = get_settings()
    market_clock = MarketClock.from_settings(settings)
    now = StaticMarketData().now()
    click.echo(f"Market status: {market_clock.status(now).value}")
    click.echo(f"Trading date: {market_clock.trading_date(now).isoformat()}")
    click.echo(f"Next open: {market_clock.next_open(now).isoformat()}")


@cli.command()
@click.option("--entry", type=float, required=True, help="Entry price")
@click.option("--stop", type=float, required=True, help="Stop-loss price")
@click.option("--direction", "-d", type=_DIRECTION, default="long", show_default=True)
@click.option("--equity", type=float, default=None, help="Account equity override")
def size(entry: float, stop: float, direction: str, equity: float | None) -> None:
    """Compute the position size for an entry and stop."""
    setup_logging()
    settings = get_settings()
    sizing = compute_position_size(
        account_equity=settings.account_equity if equity is None else equity,
        risk_percent_per_trade=settings.risk_percent_per_trade,
        entry_price=entry,
        stop_loss_price=stop,
        direction=Direction(direction),
        scale_out_ratio=settings.scale_out_ratio,
        reward_risk_multiple=settings.reward_risk_multiple,
    )
    _echo_sizing(sizing)
    if not sizing.is_valid:
        sys.exit(1)


@cli.command()
@click.option("--trader", "-t", required=True, help="Trader id")
@click.option("--calm/--not-calm", default=False, help="I am calm and focused")
@click.option("--loss-limit/--no-loss-limit", default=False, help="My daily loss limit is defined")
@click.option("--accept-risk/--no-accept-risk", default=False, help="I accept the risk of this session")
def preflight(trader: str, calm: bool, loss_limit: bool, accept_risk: bool) -> None:
    """Confirm the preflight checklist for today's session."""
    setup_logging()
    settings = get_settings()
    settings.ensure_directories()
    desk = build_desk(settings, StaticMarketData())
    answers = PreflightAnswers(
        calm_focused=calm,
        loss_limit_defined=loss_limit,
        risk_accepted=accept_risk,
    )
    try:
        session = desk.open_session(trader)
        record = desk.confirm_preflight(session, answers)
    except TradeGuardError as exc:
        _fail(f"Preflight rejected: {exc}")
        return
    click.echo(f"[OK] Preflight confirmed for {record.confirmed_by} at {record.confirmed_at.isoformat()}")


@cli.command()
@click.option("--trader", "-t", required=True, help="Trader id")
@click.option("--symbol", "-s", required=True, help="Ticker symbol")
@click.option("--price", type=float, required=True, help="Current price (entry)")
@click.option("--stop", type=float, required=True, help="Stop-loss price")
@click.option("--direction", "-d", type=_DIRECTION, default="long", show_default=True)
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt")
def trade(trader: str, symbol: str, price: float, stop: float, direction: str, yes: bool) -> None:
    """Size, gate and execute one trade."""
    setup_logging()
    logger = get_logger("trade_guard.main")
    settings = get_settings()
    settings.ensure_directories()

    if settings.is_live_mode:
        missing = settings.validate_for_live()
        if missing:
            logger.error("missing_required_config", missing_keys=missing)
            sys.exit(1)

    feed = StaticMarketData({symbol: price})
    desk = build_desk(settings, feed)
    session = desk.open_session(trader)
    evaluation = desk.evaluate(session, symbol, stop, Direction(direction))
    _echo_sizing(evaluation.sizing)
    click.echo(f"Market: {evaluation.market_status.value}")

    if evaluation.reason is not None:
        _fail(f"Execution disabled: {evaluation.reason.message}")
        return

    if not yes and not click.confirm("Submit order?", default=False):
        click.echo("Cancelled")
        return

    try:
        result = asyncio.run(desk.execute(session, evaluation))
    except TradeGuardError as exc:
        _fail(str(exc))
        return

    plan = result.position.exit_plan
    click.echo(f"[OK] Order {result.order_id} {result.status}")
    click.echo(f"   Target 1: {plan.target1_shares} @ {plan.target1_price:.2f}, then stop to breakeven")
    click.echo(f"   Runner: {plan.runner_shares} shares, {plan.runner_trailing_rule}")


@cli.command()
@click.option("--trader", "-t", required=True, help="Trader id")
@click.option("--exit-price", type=float, required=True, help="Exit fill price")
def close(trader: str, exit_price: float) -> None:
    """Record the exit of today's open position."""
    setup_logging()
    settings = get_settings()
    settings.ensure_directories()
    desk = build_desk(settings, StaticMarketData())
    session = desk.open_session(trader)
    try:
        result = desk.close(session, exit_price)
    except TradeGuardError as exc:
        _fail(str(exc))
        return

    click.echo(f"[OK] Closed {result.shares} {result.symbol}: PnL ${result.realized_pnl:,.2f}")
    breaker = result.circuit_breaker
    if breaker.is_locked:
        click.echo(f"[LOCKED] Trading locked for today: {breaker.lock_reason}")


@cli.command()
@click.option("--trader", "-t", required=True, help="Trader id")
def session(trader: str) -> None:
    """Show today's persisted session."""
    setup_logging()
    settings = get_settings()
    settings.ensure_directories()
    desk = build_desk(settings, StaticMarketData())
    current = desk.open_session(trader)
    click.echo(json.dumps(current.to_snapshot(), indent=2))


if __name__ == "__main__":
    cli()
