"""hatchlive: live log tail and service health for the hatch developer proxy."""

from .api import HatchClient
from .config import load_config
from .core.buffer import TailBuffer
from .core.filters import FilterState, filter_entries
from .core.health import HealthPoller
from .core.tailer import LogTailer, ReconnectPolicy
from .types import (
    HatchLiveConfig,
    HatchLiveError,
    HealthSnapshot,
    LogEntry,
    SessionState,
)

__version__ = "0.1.0"

__all__ = [
    "LogTailer",
    "HealthPoller",
    "HatchClient",
    "ReconnectPolicy",
    "TailBuffer",
    "FilterState",
    "filter_entries",
    "load_config",
    "HatchLiveConfig",
    "HatchLiveError",
    "HealthSnapshot",
    "LogEntry",
    "SessionState",
]
