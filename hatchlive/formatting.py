"""Plain-text and Rich-markup rendering of log entries and health status."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from rich.markup import escape

from .core.filters import field_text
from .types import LogEntry

LEVEL_STYLES = {
    "debug": "dim",
    "info": "cyan",
    "warn": "yellow",
    "error": "bold red",
}

HEALTH_STYLES = {
    "healthy": "green",
    "unhealthy": "red",
    "unknown": "magenta",
}


def format_time(ts: str) -> str:
    """``HH:MM:SS.mmm`` in local time; the input unchanged if unparseable."""
    if not ts:
        return ""
    raw = ts[:-1] + "+00:00" if ts.endswith(("Z", "z")) else ts
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return ts
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%H:%M:%S.") + f"{dt.microsecond // 1000:03d}"


def format_fields(fields: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={field_text(v)}" for k, v in fields.items())


def format_entry(entry: LogEntry) -> str:
    parts = [format_time(entry.timestamp), f"{entry.level.upper():<5}", entry.message]
    extra = format_fields(entry.fields)
    if extra:
        parts.append(extra)
    return " ".join(p for p in parts if p)


def format_entry_markup(entry: LogEntry) -> str:
    """Same layout as format_entry, with Rich markup for the level badge."""
    style = LEVEL_STYLES.get(entry.level, "")
    parts = []
    ts = format_time(entry.timestamp)
    if ts:
        parts.append(f"[dim]{escape(ts)}[/dim]")
    parts.append(f"[{style}]{entry.level.upper():<5}[/{style}]")
    if entry.message:
        parts.append(escape(entry.message))
    extra = format_fields(entry.fields)
    if extra:
        parts.append(f"[dim]{escape(extra)}[/dim]")
    return " ".join(parts)


def format_health_markup(status: str) -> str:
    style = HEALTH_STYLES.get(status, HEALTH_STYLES["unknown"])
    return f"[{style}]●[/{style}] {status}"
