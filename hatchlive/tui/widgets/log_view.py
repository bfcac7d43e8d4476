"""Scrollable log tail display."""

from __future__ import annotations

from collections.abc import Iterable

from textual.widgets import RichLog

from ...formatting import format_entry_markup
from ...types import LogEntry


class LogView(RichLog):
    """Shows formatted log entries, auto-scrolling while at the bottom.

    ``rendered_ids`` mirrors what is on screen so the app can tell whether
    an incremental append is enough or a full re-render is needed.
    """

    def __init__(self, max_lines: int | None = None, **kwargs) -> None:
        super().__init__(markup=True, wrap=False, auto_scroll=True, max_lines=max_lines, **kwargs)
        self.rendered_ids: list[int] = []

    def add_entry(self, entry: LogEntry) -> None:
        self.rendered_ids.append(entry.id)
        self.write(format_entry_markup(entry))

    def show(self, entries: Iterable[LogEntry]) -> None:
        """Replace the whole view with *entries*."""
        self.clear()
        self.rendered_ids = []
        shown = False
        for entry in entries:
            self.add_entry(entry)
            shown = True
        if not shown:
            self.write("[dim]No log entries[/dim]")

    def jump_to_latest(self) -> None:
        self.auto_scroll = True
        self.scroll_end(animate=False)
