"""Level toggle indicator for the toolbar."""

from __future__ import annotations

from textual.widgets import Static

from ...core.filters import ALL_LEVELS
from ...formatting import LEVEL_STYLES
from ...types import LEVELS


class LevelBar(Static):
    """Shows which levels are enabled; toggled with d/i/w/e."""

    DEFAULT_CSS = """
    LevelBar {
        width: auto;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)
        self._enabled: frozenset[str] = ALL_LEVELS

    def set_enabled(self, levels: frozenset[str]) -> None:
        self._enabled = levels
        self.refresh(layout=True)

    def render(self) -> str:
        parts = []
        for level in LEVELS:
            if level in self._enabled:
                style = LEVEL_STYLES[level]
                parts.append(f"[{style} reverse] {level.upper()} [/{style} reverse]")
            else:
                parts.append(f"[dim strike] {level.upper()} [/dim strike]")
        return " ".join(parts)
