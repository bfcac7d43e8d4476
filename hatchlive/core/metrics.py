"""Thread-safe diagnostic counters and event log for the log tailer."""

from __future__ import annotations

import threading
import time
from collections import deque
from datetime import datetime, timezone


class TailerMetrics:
    """Collects session lifecycle events and decode counters.

    Nothing here is shown to the user by default; it exists so dropped
    lines and flapping connections can be inspected (``hatchlive logs -v``
    prints a summary from ``snapshot()``).
    """

    MAX_EVENTS = 200

    def __init__(self) -> None:
        self.start_time: float = time.time()
        self._lock = threading.Lock()
        self._seq = 0
        self._events: deque[dict] = deque(maxlen=self.MAX_EVENTS)
        self.sessions_started = 0
        self.sessions_connected = 0
        self.disconnects = 0
        self.lines_decoded = 0
        self.lines_dropped = 0
        self.last_error: str | None = None

    def record(self, event: dict) -> None:
        """Append an event (thread-safe). Adds ``_seq`` and ``ts``."""
        with self._lock:
            event = dict(event)  # shallow copy to avoid caller mutation
            event["_seq"] = self._seq
            if "ts" not in event:
                event["ts"] = datetime.now(timezone.utc).isoformat()
            self._seq += 1
            self._events.append(event)

    def events_since(self, seq: int) -> list[dict]:
        """Return events with ``_seq`` > *seq*."""
        with self._lock:
            return [e for e in self._events if e["_seq"] > seq]

    def session_started(self, url: str) -> None:
        with self._lock:
            self.sessions_started += 1
        self.record({"type": "session_start", "url": url})

    def session_connected(self, url: str) -> None:
        with self._lock:
            self.sessions_connected += 1
        self.record({"type": "connected", "url": url})

    def session_closed(self, url: str, reason: str, error: str | None = None) -> None:
        with self._lock:
            self.disconnects += 1
            if error:
                self.last_error = error
        event = {"type": "disconnected", "url": url, "reason": reason}
        if error:
            event["error"] = error
        self.record(event)

    def line_decoded(self) -> None:
        with self._lock:
            self.lines_decoded += 1

    def line_dropped(self, line: str, reason: str) -> None:
        with self._lock:
            self.lines_dropped += 1
        self.record({"type": "dropped_line", "reason": reason, "line": line[:200]})

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_s": round(time.time() - self.start_time, 1),
                "sessions_started": self.sessions_started,
                "sessions_connected": self.sessions_connected,
                "disconnects": self.disconnects,
                "lines_decoded": self.lines_decoded,
                "lines_dropped": self.lines_dropped,
                "last_error": self.last_error,
                "recent_events": list(self._events)[-20:],
            }
