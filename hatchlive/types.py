"""All dataclasses, enums and exceptions for hatchlive."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------

LEVELS: tuple[str, ...] = ("debug", "info", "warn", "error")
DEFAULT_LEVEL = "info"


@dataclass(frozen=True)
class LogEntry:
    """One decoded line of the daemon log stream.

    ``fields`` holds every key of the JSON payload other than the
    timestamp/level/message keys. It is wrapped in a read-only mapping so
    an entry cannot change once it has been appended to a buffer.
    """
    id: int
    timestamp: str
    level: str = DEFAULT_LEVEL
    message: str = ""
    fields: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


@dataclass(frozen=True)
class BufferChange:
    """Notification sent to TailBuffer subscribers after each mutation."""
    kind: Literal["append", "clear"]
    entry: LogEntry | None = None
    evicted: int = 0  # entries dropped from the head by this mutation


# ---------------------------------------------------------------------------
# Stream session
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """Connection state as seen by consumers of the tailer."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class SessionPhase(enum.Enum):
    """Lifecycle of a single StreamSession instance."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"  # terminal


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

HEALTH_STATUSES: tuple[str, ...] = ("healthy", "unhealthy", "unknown")


@dataclass(frozen=True)
class HealthSnapshot:
    """Health of one (project, service) upstream as reported by the daemon."""
    project: str
    service: str
    status: str = "unknown"
    addr: str = ""
    since: str = ""
    last_check: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> HealthSnapshot:
        status = str(raw.get("status") or "unknown").lower()
        if status not in HEALTH_STATUSES:
            status = "unknown"
        return cls(
            project=str(raw.get("project", "")),
            service=str(raw.get("service", "")),
            status=status,
            addr=str(raw.get("addr") or ""),
            since=str(raw.get("since") or ""),
            last_check=str(raw.get("last_check") or ""),
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.project, self.service)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class DaemonConfig:
    """Where the hatch daemon's API lives."""
    base_url: str = "http://127.0.0.1:42824"
    logs_path: str = "/api/logs"
    health_path: str = "/api/health"


@dataclass
class TailerConfig:
    """Log tail buffer size and reconnection behaviour."""
    capacity: int = 1000
    reconnect_delay: float = 3.0  # seconds
    backoff_factor: float = 1.0  # 1.0 = fixed delay
    max_reconnect_delay: float = 30.0
    connect_timeout: float = 5.0
    idle_timeout: float | None = None  # None = no read timeout
    flush_partial_on_close: bool = False


@dataclass
class HealthConfig:
    interval: float = 10.0  # seconds between polls
    timeout: float = 5.0


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class HatchLiveConfig:
    """Top-level configuration."""
    version: str = "1"
    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    tailer: TailerConfig = field(default_factory=TailerConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def logs_url(self) -> str:
        return self.daemon.base_url.rstrip("/") + self.daemon.logs_path

    @property
    def health_url(self) -> str:
        return self.daemon.base_url.rstrip("/") + self.daemon.health_path


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class HatchLiveError(Exception):
    """Base class for hatchlive errors."""


class StreamConnectError(HatchLiveError):
    """The log stream request was rejected or returned no usable body."""

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class HealthPollError(HatchLiveError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(HatchLiveError):
    """Config file could not be read or parsed."""
