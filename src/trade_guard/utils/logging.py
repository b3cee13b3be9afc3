"""Structured logging setup.

structlog over the standard library, rendering either JSON or colored
console output.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from trade_guard.config import LogFormat, get_settings


def setup_logging() -> None:
    """Configure structured logging from settings."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == LogFormat.JSON:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger.

    Args:
        name: Logger name. Defaults to the calling module.

    Returns:
        Bound structured logger.
    """
    return structlog.get_logger(name)


def log_preflight(
    logger: structlog.stdlib.BoundLogger,
    *,
    trader_id: str,
    session_id: str,
    accepted: bool,
    **kwargs: Any,
) -> None:
    """Record a preflight checklist submission."""
    level = "info" if accepted else "warning"
    getattr(logger, level)(
        "preflight_submitted",
        trader_id=trader_id,
        session_id=session_id,
        accepted=accepted,
        **kwargs,
    )


def log_order_execution(
    logger: structlog.stdlib.BoundLogger,
    *,
    symbol: str,
    side: str,
    quantity: float,
    price: float | None = None,
    order_id: str | None = None,
    status: str = "submitted",
    **kwargs: Any,
) -> None:
    """Record an order execution."""
    logger.info(
        "order_execution",
        symbol=symbol,
        side=side,
        quantity=quantity,
        price=price,
        order_id=order_id,
        status=status,
        **kwargs,
    )


def log_risk_event(
    logger: structlog.stdlib.BoundLogger,
    *,
    event_type: str,
    action: str,
    **kwargs: Any,
) -> None:
    """Record a risk control event."""
    logger.warning(
        "risk_event",
        event_type=event_type,
        action=action,
        **kwargs,
    )
