"""Broker adapter contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

from trade_guard.types import Direction


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """One bracketed entry order with its first scale-out target."""

    symbol: str
    direction: Direction
    shares: int
    stop_loss_price: float
    target1_price: float
    target1_shares: int

    def to_payload(self) -> dict[str, object]:
        return {
            "symbol": self.symbol,
            "side": "buy" if self.direction is Direction.LONG else "sell_short",
            "shares": self.shares,
            "stop_loss_price": self.stop_loss_price,
            "target1_price": self.target1_price,
            "target1_shares": self.target1_shares,
        }


class OrderResult(BaseModel):
    """Broker acknowledgement of a submitted order."""

    model_config = ConfigDict(extra="ignore")

    order_id: str = Field(min_length=1)
    status: Literal["accepted", "filled", "partially_filled", "rejected"]
    filled_price: float | None = Field(default=None, gt=0.0)
    submitted_at: str | None = None


class BrokerAdapter(Protocol):
    """Order routing collaborator. Retries, if any, are its own business."""

    async def submit_order(self, request: OrderRequest) -> OrderResult: ...
