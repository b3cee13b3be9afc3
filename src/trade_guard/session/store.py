"""Local JSON persistence of trading sessions.

One file per trader per trading day. Reloading the same day returns the
persisted session, so a restart never silently clears a circuit breaker
lock or a confirmed checklist.
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Any

from trade_guard.errors import SessionStoreError
from trade_guard.events import GuardEvent
from trade_guard.types import TradingSession
from trade_guard.utils.logging import get_logger

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class SessionStore:
    """Reads and writes session snapshots."""

    def __init__(self, session_dir: Path) -> None:
        self._session_dir = session_dir
        self._session_dir.mkdir(parents=True, exist_ok=True)
        self._logger = get_logger("trade_guard.session.store")

    def load_or_create(self, trader_id: str, trading_date: date) -> tuple[TradingSession, bool]:
        """Return the day's session for a trader and whether it was just created."""
        existing = self.load(trader_id, trading_date)
        if existing is not None:
            return existing, False
        session = TradingSession(
            session_id=uuid.uuid4().hex,
            trader_id=trader_id,
            trading_date=trading_date,
        )
        self.save(session.to_snapshot())
        self._logger.info(
            "session_created",
            session_id=session.session_id,
            trader_id=trader_id,
            trading_date=trading_date.isoformat(),
        )
        return session, True

    def load(self, trader_id: str, trading_date: date) -> TradingSession | None:
        file_path = self._file_path(trader_id, trading_date)
        if not file_path.exists():
            return None
        try:
            raw = json.loads(file_path.read_text(encoding="utf-8"))
            return TradingSession.from_snapshot(raw)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise SessionStoreError(f"corrupt_session_snapshot: {file_path}") from exc

    def save(self, snapshot: dict[str, Any]) -> Path:
        file_path = self._file_path(
            str(snapshot["trader_id"]),
            date.fromisoformat(snapshot["trading_date"]),
        )
        serialized = json.dumps(snapshot, ensure_ascii=True, indent=2)
        tmp_path = file_path.with_suffix(".json.tmp")
        tmp_path.write_text(serialized, encoding="utf-8")
        tmp_path.replace(file_path)
        return file_path

    def handle_event(self, event: GuardEvent) -> None:
        """Event bus subscriber: persist every session snapshot."""
        if event.kind == "session_snapshot":
            self.save(event.payload)

    def _file_path(self, trader_id: str, trading_date: date) -> Path:
        safe_trader = _SAFE_ID.sub("_", trader_id)
        return self._session_dir / f"{safe_trader}_{trading_date.isoformat()}.json"
