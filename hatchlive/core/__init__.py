from .buffer import TailBuffer
from .decoder import EntryDecoder, normalize_level
from .filters import ALL_LEVELS, FilterState, filter_entries
from .framer import LineFramer
from .health import HealthPoller
from .metrics import TailerMetrics
from .session import StreamSession
from .tailer import LogTailer, ReconnectPolicy

__all__ = [
    "ALL_LEVELS",
    "EntryDecoder",
    "FilterState",
    "HealthPoller",
    "LineFramer",
    "LogTailer",
    "ReconnectPolicy",
    "StreamSession",
    "TailBuffer",
    "TailerMetrics",
    "filter_entries",
    "normalize_level",
]
