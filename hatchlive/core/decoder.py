"""EntryDecoder: one framed SSE line -> LogEntry, or nothing."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from ..types import DEFAULT_LEVEL, LEVELS, LogEntry

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
# Other SSE field lines carry no log payload
_SSE_FIELD_PREFIXES = ("event:", "id:", "retry:")

TIMESTAMP_KEYS = ("time", "timestamp")
RESERVED_KEYS = frozenset(TIMESTAMP_KEYS) | {"level", "message"}

LEVEL_ALIASES = {
    "warning": "warn",
    "trace": "debug",
    "err": "error",
    "fatal": "error",
    "panic": "error",
    "critical": "error",
}


def normalize_level(value: Any) -> str:
    """Map a wire level onto debug/info/warn/error (``info`` if unknown)."""
    if not isinstance(value, str):
        return DEFAULT_LEVEL
    level = value.strip().lower()
    level = LEVEL_ALIASES.get(level, level)
    return level if level in LEVELS else DEFAULT_LEVEL


def strip_data_prefix(line: str) -> str | None:
    """Return the payload of an SSE line, or None if it carries none.

    ``data: {...}`` and ``data:{...}`` both yield ``{...}``; a line
    without the prefix is taken as a bare payload. Comments (``:``) and
    other SSE fields yield None.
    """
    line = line.strip()
    if not line or line.startswith(":"):
        return None
    if line.startswith(DATA_PREFIX):
        return line[len(DATA_PREFIX):].strip() or None
    if line.startswith(_SSE_FIELD_PREFIXES):
        return None
    return line


class EntryDecoder:
    """Decode log stream lines into LogEntry objects with increasing ids.

    The id counter lives on the decoder; the tailer keeps one decoder for
    its whole lifetime so ids keep increasing across reconnects. Ids are
    only consumed by lines that decode successfully.

    Malformed lines never raise. They are passed to ``on_drop`` (if given)
    and logged at DEBUG.
    """

    def __init__(
        self,
        start_id: int = 0,
        on_drop: Callable[[str, str], None] | None = None,
    ) -> None:
        self._last_id = start_id
        self._on_drop = on_drop

    @property
    def last_id(self) -> int:
        return self._last_id

    def decode(self, line: str) -> LogEntry | None:
        payload = strip_data_prefix(line)
        if payload is None:
            return None

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._drop(line, "invalid json")
            return None
        except RecursionError:
            self._drop(line, "json nested too deeply")
            return None

        if not isinstance(data, dict):
            self._drop(line, "payload is not an object")
            return None

        timestamp: Any = ""
        for key in TIMESTAMP_KEYS:
            if data.get(key) is not None:
                timestamp = data[key]
                break

        message = data.get("message")
        fields = {k: v for k, v in data.items() if k not in RESERVED_KEYS}

        self._last_id += 1
        return LogEntry(
            id=self._last_id,
            timestamp=timestamp if isinstance(timestamp, str) else str(timestamp),
            level=normalize_level(data.get("level")),
            message="" if message is None else str(message),
            fields=fields,
        )

    def _drop(self, line: str, reason: str) -> None:
        logger.debug("Dropped log line (%s): %.200s", reason, line)
        if self._on_drop is not None:
            self._on_drop(line, reason)
