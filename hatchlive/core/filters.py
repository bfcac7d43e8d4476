"""Level + free-text filtering over a snapshot of the tail."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..types import LEVELS, LogEntry

ALL_LEVELS: frozenset[str] = frozenset(LEVELS)


def field_text(value: Any) -> str:
    """String form of a field value as it appeared on the wire."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def entry_matches(entry: LogEntry, enabled_levels: Iterable[str], search_query: str = "") -> bool:
    if entry.level not in enabled_levels:
        return False
    if not search_query:
        return True
    q = search_query.lower()
    if q in entry.message.lower():
        return True
    return any(q in field_text(v).lower() for v in entry.fields.values())


def filter_entries(
    entries: Iterable[LogEntry],
    enabled_levels: Iterable[str] = ALL_LEVELS,
    search_query: str = "",
) -> list[LogEntry]:
    """Visible subsequence of *entries*, order preserved. Never mutates."""
    levels = frozenset(enabled_levels)
    return [e for e in entries if entry_matches(e, levels, search_query)]


@dataclass(frozen=True)
class FilterState:
    """View parameters for the log tail; independent of the buffer."""
    enabled_levels: frozenset[str] = field(default_factory=lambda: ALL_LEVELS)
    search_query: str = ""

    def toggle(self, level: str) -> FilterState:
        levels = set(self.enabled_levels)
        if level in levels:
            levels.discard(level)
        else:
            levels.add(level)
        return FilterState(frozenset(levels), self.search_query)

    def with_query(self, search_query: str) -> FilterState:
        return FilterState(self.enabled_levels, search_query)

    def matches(self, entry: LogEntry) -> bool:
        return entry_matches(entry, self.enabled_levels, self.search_query)

    def apply(self, entries: Iterable[LogEntry]) -> list[LogEntry]:
        return filter_entries(entries, self.enabled_levels, self.search_query)
