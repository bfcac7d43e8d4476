"""Connected / disconnected indicator."""

from __future__ import annotations

from textual.widgets import Static

from ...types import SessionState

_STYLES = {
    SessionState.CONNECTED: ("green", "Connected"),
    SessionState.CONNECTING: ("yellow", "Connecting"),
    SessionState.DISCONNECTED: ("red", "Disconnected"),
}


class ConnectionBadge(Static):

    DEFAULT_CSS = """
    ConnectionBadge {
        width: auto;
        padding: 0 1;
        dock: right;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)
        self.state = SessionState.DISCONNECTED
        self.entry_count = 0

    def on_mount(self) -> None:
        self._refresh_display()

    def set_state(self, state: SessionState) -> None:
        self.state = state
        self._refresh_display()

    def set_count(self, count: int) -> None:
        self.entry_count = count
        self._refresh_display()

    def _refresh_display(self) -> None:
        color, label = _STYLES[self.state]
        self.update(f"[dim]{self.entry_count:,} entries[/dim]  [{color}]●[/{color}] {label}")
