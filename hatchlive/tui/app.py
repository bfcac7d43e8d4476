"""LogViewerApp: Textual application wiring the log tailer and health poller."""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Input

from ..api import HatchClient
from ..config import load_config, validate_config
from ..core.filters import FilterState
from ..core.health import HealthPoller
from ..core.tailer import LogTailer
from ..types import BufferChange, ConfigError, HatchLiveConfig, HealthSnapshot, SessionState
from .widgets.connection_badge import ConnectionBadge
from .widgets.health_panel import HealthPanel
from .widgets.level_bar import LevelBar
from .widgets.log_view import LogView


class LogViewerApp(App):
    """Live daemon log tail with level toggles, search and service health."""

    CSS = """
    #toolbar {
        height: 1;
        margin: 0 0 1 0;
    }
    #search {
        width: 32;
        height: 1;
        border: none;
        padding: 0 1;
    }
    #main-layout {
        height: 1fr;
    }
    #log-view {
        width: 1fr;
    }
    #health-panel {
        width: 36;
        border-left: solid $panel;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("d", "toggle_level('debug')", "Debug"),
        Binding("i", "toggle_level('info')", "Info"),
        Binding("w", "toggle_level('warn')", "Warn"),
        Binding("e", "toggle_level('error')", "Error"),
        Binding("slash", "focus_search", "Search"),
        Binding("escape", "focus_log", "Log", show=False),
        Binding("ctrl+l", "clear", "Clear", priority=True),
        Binding("end", "jump_latest", "Latest"),
    ]

    RENDER_INTERVAL = 0.1

    def __init__(
        self,
        config: HatchLiveConfig | None = None,
        tailer: LogTailer | None = None,
        poller: HealthPoller | None = None,
        autostart: bool = True,
    ) -> None:
        super().__init__()
        if config is None:
            config = load_config()
            errors = validate_config(config)
            if errors:
                raise ConfigError("; ".join(errors))
        self.config = config
        self.tailer = tailer or LogTailer.from_config(self.config)
        self.poller = poller or HealthPoller(
            HatchClient.from_config(self.config), interval=self.config.health.interval,
        )
        self.filter_state = FilterState()
        self._autostart = autostart
        self._needs_render = False
        self._unsubscribers: list = []

    @property
    def _log_view(self) -> LogView:
        return self.query_one("#log-view", LogView)

    @property
    def _badge(self) -> ConnectionBadge:
        return self.query_one("#connection", ConnectionBadge)

    def compose(self) -> ComposeResult:
        with Horizontal(id="toolbar"):
            yield LevelBar(id="level-bar")
            yield Input(placeholder="Search logs…", id="search")
            yield ConnectionBadge(id="connection")
        with Horizontal(id="main-layout"):
            yield LogView(max_lines=self.tailer.buffer.capacity, id="log-view")
            yield HealthPanel(id="health-panel")
        yield Footer()

    async def on_mount(self) -> None:
        self._unsubscribers = [
            self.tailer.subscribe(self._on_buffer_change),
            self.tailer.on_state_change(self._on_state_change),
            self.poller.subscribe(self._on_health),
        ]
        self._badge.set_state(self.tailer.state)
        self.query_one("#health-panel", HealthPanel).update_health(self.poller.snapshots)
        self.render_entries()
        self.set_interval(self.RENDER_INTERVAL, self._render_if_needed)
        self._log_view.focus()
        if self._autostart:
            await self.tailer.start()
            await self.poller.start()

    async def on_unmount(self) -> None:
        await self._shutdown_sources()

    async def action_quit(self) -> None:
        await self._shutdown_sources()
        self.exit()

    async def _shutdown_sources(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self.tailer.stop()
        await self.poller.stop()

    # -- source callbacks (run on the app's event loop) --

    def _on_buffer_change(self, change: BufferChange) -> None:
        if change.kind == "clear":
            self._needs_render = False
            self._log_view.show([])
        elif change.evicted:
            # Head of the view may now show entries no longer in the tail
            self._needs_render = True
        elif change.entry is not None and self.filter_state.matches(change.entry):
            if not self._log_view.rendered_ids:
                self._log_view.clear()  # drop the "No log entries" line
            self._log_view.add_entry(change.entry)
        self._badge.set_count(len(self.tailer.buffer))

    def _on_state_change(self, state: SessionState) -> None:
        self._badge.set_state(state)

    def _on_health(self, snapshots: list[HealthSnapshot]) -> None:
        self.query_one("#health-panel", HealthPanel).update_health(snapshots)

    def _render_if_needed(self) -> None:
        if self._needs_render:
            self.render_entries()

    def render_entries(self) -> None:
        """Re-render the log view from the tail and the current filter."""
        self._needs_render = False
        self._log_view.show(self.tailer.filtered(self.filter_state))

    def _set_filter(self, filter_state: FilterState) -> None:
        self.filter_state = filter_state
        self.query_one("#level-bar", LevelBar).set_enabled(filter_state.enabled_levels)
        self.render_entries()

    # -- actions --

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self._set_filter(self.filter_state.with_query(event.value))

    def action_toggle_level(self, level: str) -> None:
        self._set_filter(self.filter_state.toggle(level))

    def action_clear(self) -> None:
        self.tailer.clear()

    def action_jump_latest(self) -> None:
        self._log_view.jump_to_latest()

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_focus_log(self) -> None:
        self._log_view.focus()


def run_viewer(config: HatchLiveConfig | None = None) -> None:
    """Entry point for the TUI log viewer."""
    app = LogViewerApp(config=config)
    app.run()
