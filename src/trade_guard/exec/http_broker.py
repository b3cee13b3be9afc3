"""REST broker adapter."""

from __future__ import annotations

import time
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from trade_guard.config import Settings
from trade_guard.errors import BrokerError
from trade_guard.exec.broker import OrderRequest, OrderResult
from trade_guard.utils.logging import get_logger, log_order_execution


class _ConnectFailed(Exception):
    """The request never reached the broker, so resending cannot duplicate it."""


class HttpBrokerAdapter:
    """Posts orders to ``{base_url}/orders``.

    Only connection failures are retried. Once a request may have reached
    the broker, any failure is reported and the caller must re-query order
    status before trying again.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._logger = get_logger("trade_guard.exec.http_broker")

    async def submit_order(self, request: OrderRequest) -> OrderResult:
        if not self._settings.broker_base_url:
            raise BrokerError("missing_broker_base_url")

        started = time.perf_counter()
        try:
            payload = await self._post_order(request)
        except _ConnectFailed as exc:
            raise BrokerError(f"broker_unreachable: {exc}") from exc

        try:
            result = OrderResult.model_validate(payload)
        except PydanticValidationError as exc:
            raise BrokerError(f"invalid_broker_response: {exc.errors()[0]['msg']}") from exc

        log_order_execution(
            self._logger,
            symbol=request.symbol,
            side=request.direction.value,
            quantity=request.shares,
            price=result.filled_price,
            order_id=result.order_id,
            status=result.status,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        if result.status == "rejected":
            raise BrokerError(f"order_rejected: {result.order_id}")
        return result

    @retry(
        retry=retry_if_exception_type(_ConnectFailed),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _post_order(self, request: OrderRequest) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._settings.broker_api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.broker_base_url,
                timeout=self._settings.broker_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post("/orders", headers=headers, json=request.to_payload())
                response.raise_for_status()
        except httpx.ConnectError as exc:
            raise _ConnectFailed(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise BrokerError(f"broker_request_failed: {exc}") from exc

        body = response.json()
        if not isinstance(body, dict):
            raise BrokerError("invalid_broker_response: not an object")
        return body
