"""Run event loggers.

The bot reports what it does as (event_type, data) events: start, stop,
serial, parallel, transition, set_state, pause. Loggers may be called from
several device threads at once, so each one serializes its own writes.
"""

import json
import threading
from datetime import datetime
from typing import Any, TextIO


class NullLogger:
    """Discards every event."""

    def log(self, event_type: str, data: dict[str, Any] | None = None) -> "NullLogger":
        return self


class CollectingLogger:
    """Keeps events in memory as (timestamp, event_type, data) tuples."""

    def __init__(self):
        self.events: list[tuple[datetime, str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def log(self, event_type: str, data: dict[str, Any] | None = None) -> "CollectingLogger":
        now = datetime.now()
        with self._lock:
            self.events.append((now, event_type, data or {}))
        return self

    def event_types(self) -> list[str]:
        with self._lock:
            return [event_type for _, event_type, _ in self.events]


class IOLogger:
    """Writes one "<timestamp> <event> <json>" line per event."""

    def __init__(self, io: TextIO):
        self._io = io
        self._lock = threading.Lock()

    def log(self, event_type: str, data: dict[str, Any] | None = None) -> "IOLogger":
        ts = datetime.now().astimezone().isoformat(timespec="seconds")
        line = f"{ts} {event_type} {json.dumps(data or {}, default=str)}"
        with self._lock:
            print(line, file=self._io, flush=True)
        return self
