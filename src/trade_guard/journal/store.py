"""JSONL journal of engine events."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from trade_guard.events import EVENT_KINDS, GuardEvent


class JournalStore:
    """Append-only JSONL event store, one file per day."""

    def __init__(self, journal_dir: Path) -> None:
        self._journal_dir = journal_dir
        self._journal_dir.mkdir(parents=True, exist_ok=True)

    def append(self, event_type: str, session_id: str, payload: dict[str, Any]) -> None:
        """Append one event line to the daily JSONL file."""
        if event_type not in EVENT_KINDS:
            raise ValueError(f"unsupported_event_type: {event_type}")
        now = datetime.now(timezone.utc)
        record = {
            "timestamp": now.isoformat(),
            "event_type": event_type,
            "session_id": session_id,
            "payload": payload,
        }
        file_path = self._file_path_for_day(now.date())
        with file_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=True, default=str) + "\n")

    def handle_event(self, event: GuardEvent) -> None:
        """Event bus subscriber."""
        self.append(event.kind, event.session_id, event.payload)

    def load_recent(self, limit: int, session_id: str | None = None) -> list[dict[str, Any]]:
        """Load recent events from the most recent journal files."""
        if limit <= 0:
            return []

        rows: list[dict[str, Any]] = []
        files = sorted(self._journal_dir.glob("*.jsonl"), reverse=True)
        for file in files:
            lines = file.read_text(encoding="utf-8").splitlines()
            for line in reversed(lines):
                if not line.strip():
                    continue
                row = json.loads(line)
                if session_id is not None and row.get("session_id") != session_id:
                    continue
                rows.append(row)
                if len(rows) >= limit:
                    return list(reversed(rows))
        return list(reversed(rows))

    def _file_path_for_day(self, day: date) -> Path:
        return self._journal_dir / f"{day.isoformat()}.jsonl"
