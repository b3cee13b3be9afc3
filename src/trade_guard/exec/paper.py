"""Paper broker that fills every order immediately."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from trade_guard.exec.broker import OrderRequest, OrderResult
from trade_guard.market.feed import MarketDataFeed


class PaperBroker:
    """Simulated fills at the feed's current price plus slippage."""

    def __init__(self, feed: MarketDataFeed, *, slippage_bps: float = 0.0) -> None:
        self._feed = feed
        self._slippage_bps = slippage_bps
        self.submitted: list[OrderRequest] = []

    async def submit_order(self, request: OrderRequest) -> OrderResult:
        if request.shares <= 0:
            raise ValueError("shares_must_be_positive")
        quote = self._feed.current_price(request.symbol)
        # Slippage always works against the trader.
        slip = 1.0 + request.direction.sign * self._slippage_bps / 10_000.0
        fill_price = round(quote * slip, 4)
        self.submitted.append(request)
        return OrderResult(
            order_id=f"paper-{uuid.uuid4().hex[:12]}",
            status="filled",
            filled_price=fill_price,
            submitted_at=datetime.now(timezone.utc).isoformat(),
        )
