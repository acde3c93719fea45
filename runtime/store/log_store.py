"""
LogStore: append-only logging for ATV-AI runtime events.

Writes JSON lines to:

    <data_dir>/logs/events_YYYY-MM-DD.jsonl

ConsoleLogStore is the sink used when no data directory is configured; it
forwards events to the standard logger instead.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


logger = logging.getLogger(__name__)


class LogStore:
    """Date-partitioned JSONL event log."""

    def __init__(self, data_dir: str = "runtime/data"):
        self.log_dir = Path(data_dir) / "logs"
        self._lock = threading.Lock()

    def _log_path(self, when: datetime) -> Path:
        return self.log_dir / f"events_{when.strftime('%Y-%m-%d')}.jsonl"

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Append one event record to today's file."""
        now = datetime.now(timezone.utc)
        record = {
            "timestamp": now.isoformat(),
            "event_type": event_type,
            "payload": payload,
        }
        line = json.dumps(record, ensure_ascii=False, default=str)

        with self._lock:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self._log_path(now).open("a", encoding="utf-8") as f:
                f.write(line + "\n")


class ConsoleLogStore:
    """Log sink used during local development / testing."""

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info("[LOG] %s: %s", event_type, payload)
