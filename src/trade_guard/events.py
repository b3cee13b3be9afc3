"""Typed engine events and a synchronous publisher.

The engine never notifies anyone directly. Storage, journaling and any
presentation layer subscribe to the bus.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

EVENT_KINDS = frozenset(
    {
        "session_started",
        "preflight_confirmed",
        "execution_blocked",
        "order_submitted",
        "order_failed",
        "position_closed",
        "breaker_locked",
        "session_snapshot",
    }
)

Subscriber = Callable[["GuardEvent"], None]


@dataclass(frozen=True, slots=True)
class GuardEvent:
    kind: str
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    """In-process fan-out to subscribers, in subscription order."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, kind: str, session_id: str, payload: dict[str, Any]) -> GuardEvent:
        if kind not in EVENT_KINDS:
            raise ValueError(f"unsupported_event_kind: {kind}")
        event = GuardEvent(kind=kind, session_id=session_id, payload=payload)
        for subscriber in self._subscribers:
            subscriber(event)
        return event
