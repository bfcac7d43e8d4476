"""Per-service health side panel."""

from __future__ import annotations

from rich.markup import escape
from textual.widgets import Static

from ...formatting import format_health_markup
from ...types import HealthSnapshot


class HealthPanel(Static):
    """Lists the latest health snapshot per (project, service).

    Uses render() so the panel always reflects the last list handed to
    ``update_health``.
    """

    DEFAULT_CSS = """
    HealthPanel {
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)
        self._snapshots: list[HealthSnapshot] = []

    @property
    def snapshots(self) -> list[HealthSnapshot]:
        return list(self._snapshots)

    def update_health(self, snapshots: list[HealthSnapshot]) -> None:
        self._snapshots = sorted(snapshots, key=lambda s: s.key)
        self.refresh(layout=True)

    def render(self) -> str:
        if not self._snapshots:
            return "[bold]HEALTH[/bold]\n[dim]No services[/dim]"

        lines = ["[bold]HEALTH[/bold]"]
        for snap in self._snapshots:
            lines.append(f"  {format_health_markup(snap.status)}  {escape(snap.project)}/{escape(snap.service)}")
            if snap.addr:
                lines.append(f"    [dim]{escape(snap.addr)}[/dim]")
        return "\n".join(lines)
