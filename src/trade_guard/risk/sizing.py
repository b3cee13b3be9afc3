"""Fixed-fractional position sizing with a scale-out plan."""

from __future__ import annotations

import math

from trade_guard.config import Settings
from trade_guard.types import Direction, PositionSizeResult

_PRICE_DECIMALS = 4
_MONEY_DECIMALS = 2
# Absorbs float noise such as 200 / 1.0000000001 before flooring.
_FLOOR_EPSILON = 1e-9


def compute_position_size(
    account_equity: float,
    risk_percent_per_trade: float,
    entry_price: float,
    stop_loss_price: float,
    direction: Direction,
    scale_out_ratio: float,
    reward_risk_multiple: float = 1.0,
) -> PositionSizeResult:
    """Size one trade so that a stop-out loses at most the risk budget.

    Every input problem is reported; nothing is clamped. An invalid result
    always carries zero shares.
    """
    direction = Direction(direction)
    errors: list[str] = []

    if account_equity <= 0:
        errors.append("account equity must be positive")
    if risk_percent_per_trade <= 0 or risk_percent_per_trade > 1:
        errors.append("risk percent must be between 0 and 1")
    if entry_price <= 0 or stop_loss_price <= 0:
        errors.append("prices must be positive")
    if not 0 <= scale_out_ratio <= 1:
        errors.append("scale-out ratio must be between 0 and 1")
    if reward_risk_multiple <= 0:
        errors.append("reward:risk multiple must be positive")

    per_share_risk = abs(entry_price - stop_loss_price)
    if per_share_risk <= 0:
        errors.append("stop must differ from entry")
    elif direction is Direction.LONG and stop_loss_price > entry_price:
        errors.append("stop must be below entry for a long")
    elif direction is Direction.SHORT and stop_loss_price < entry_price:
        errors.append("stop must be above entry for a short")

    if errors:
        return _invalid(entry_price, stop_loss_price, direction, errors)

    budget = account_equity * risk_percent_per_trade
    shares = math.floor(budget / per_share_risk + _FLOOR_EPSILON)
    if shares < 1:
        return _invalid(entry_price, stop_loss_price, direction, ["position size rounds to zero"])

    target1_price = round(
        entry_price + direction.sign * per_share_risk * reward_risk_multiple,
        _PRICE_DECIMALS,
    )
    if target1_price <= 0:
        return _invalid(
            entry_price, stop_loss_price, direction, ["target 1 price must be positive"]
        )

    target1_shares = _round_half_up(shares * scale_out_ratio)
    runner_shares = shares - target1_shares

    return PositionSizeResult(
        shares=shares,
        entry_price=float(entry_price),
        stop_loss_price=float(stop_loss_price),
        target1_price=float(target1_price),
        target1_shares=target1_shares,
        runner_shares=runner_shares,
        max_risk_amount=round(shares * per_share_risk, _MONEY_DECIMALS),
        direction=direction,
    )


class RiskCalculator:
    """Binds the configured sizing policy."""

    def __init__(
        self,
        *,
        risk_percent_per_trade: float,
        scale_out_ratio: float,
        reward_risk_multiple: float,
    ) -> None:
        self._risk_percent = risk_percent_per_trade
        self._scale_out_ratio = scale_out_ratio
        self._reward_risk_multiple = reward_risk_multiple

    @classmethod
    def from_settings(cls, settings: Settings) -> RiskCalculator:
        return cls(
            risk_percent_per_trade=settings.risk_percent_per_trade,
            scale_out_ratio=settings.scale_out_ratio,
            reward_risk_multiple=settings.reward_risk_multiple,
        )

    @property
    def risk_percent_per_trade(self) -> float:
        return self._risk_percent

    def size(
        self,
        account_equity: float,
        entry_price: float,
        stop_loss_price: float,
        direction: Direction,
    ) -> PositionSizeResult:
        """Recompute sizing for the current entry, stop and direction."""
        return compute_position_size(
            account_equity=account_equity,
            risk_percent_per_trade=self._risk_percent,
            entry_price=entry_price,
            stop_loss_price=stop_loss_price,
            direction=direction,
            scale_out_ratio=self._scale_out_ratio,
            reward_risk_multiple=self._reward_risk_multiple,
        )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _invalid(
    entry_price: float,
    stop_loss_price: float,
    direction: Direction,
    errors: list[str],
) -> PositionSizeResult:
    return PositionSizeResult(
        shares=0,
        entry_price=float(entry_price),
        stop_loss_price=float(stop_loss_price),
        target1_price=0.0,
        target1_shares=0,
        runner_shares=0,
        max_risk_amount=0.0,
        direction=direction,
        errors=tuple(errors),
    )
