from .connection_badge import ConnectionBadge
from .health_panel import HealthPanel
from .level_bar import LevelBar
from .log_view import LogView

__all__ = ["ConnectionBadge", "HealthPanel", "LevelBar", "LogView"]
