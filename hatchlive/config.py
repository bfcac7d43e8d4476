"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import httpx
import yaml

from .types import (
    ConfigError,
    DaemonConfig,
    HatchLiveConfig,
    HealthConfig,
    LoggingConfig,
    TailerConfig,
)

CONFIG_FILENAMES = [
    "hatchlive.yaml",
    "hatchlive.yml",
    "hatchlive.json",
    ".hatchlive.yaml",
]

BASE_URL_ENV = "HATCHLIVE_BASE_URL"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _discover_config() -> Path | None:
    """Search CWD then parent dirs up to home for a config file."""
    cwd = Path.cwd()
    home = Path.home()
    search = cwd
    while True:
        for name in CONFIG_FILENAMES:
            candidate = search / name
            if candidate.is_file():
                return candidate
        if search == home or search == search.parent:
            break
        search = search.parent
    return None


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _build_config(raw: dict[str, Any]) -> HatchLiveConfig:
    """Build a HatchLiveConfig from a raw dict."""
    daemon_raw = _section(raw, "daemon")
    defaults = DaemonConfig()
    daemon = DaemonConfig(
        base_url=os.environ.get(BASE_URL_ENV) or daemon_raw.get("base_url", defaults.base_url),
        logs_path=daemon_raw.get("logs_path", defaults.logs_path),
        health_path=daemon_raw.get("health_path", defaults.health_path),
    )

    tailer_raw = _section(raw, "tailer")
    tailer = TailerConfig(
        capacity=tailer_raw.get("capacity", 1000),
        reconnect_delay=tailer_raw.get("reconnect_delay", 3.0),
        backoff_factor=tailer_raw.get("backoff_factor", 1.0),
        max_reconnect_delay=tailer_raw.get("max_reconnect_delay", 30.0),
        connect_timeout=tailer_raw.get("connect_timeout", 5.0),
        idle_timeout=tailer_raw.get("idle_timeout"),
        flush_partial_on_close=tailer_raw.get("flush_partial_on_close", False),
    )

    health_raw = _section(raw, "health")
    health = HealthConfig(
        interval=health_raw.get("interval", 10.0),
        timeout=health_raw.get("timeout", 5.0),
    )

    logging_raw = _section(raw, "logging")
    logging_config = LoggingConfig(
        level=str(logging_raw.get("level", "WARNING")).upper(),
    )

    return HatchLiveConfig(
        version=str(raw.get("version", "1")),
        daemon=daemon,
        tailer=tailer,
        health=health,
        logging=logging_config,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: HatchLiveConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    d = config.daemon
    if not isinstance(d.base_url, str) or not d.base_url.startswith(("http://", "https://")):
        errors.append(f"daemon.base_url must be an http(s) URL, got {d.base_url!r}")
    else:
        try:
            httpx.URL(d.base_url)
        except httpx.InvalidURL as e:
            errors.append(f"daemon.base_url is not a valid URL: {e}")

    for name in ("logs_path", "health_path"):
        value = getattr(d, name)
        if not isinstance(value, str) or not value.startswith("/"):
            errors.append(f"daemon.{name} must start with '/'")

    t = config.tailer
    if not isinstance(t.capacity, int) or isinstance(t.capacity, bool) or t.capacity < 1:
        errors.append(f"tailer.capacity must be an integer >= 1, got {t.capacity!r}")

    numbers_ok = True
    for name in ("reconnect_delay", "backoff_factor", "max_reconnect_delay", "connect_timeout"):
        if not _is_number(getattr(t, name)):
            errors.append(f"tailer.{name} must be a number, got {getattr(t, name)!r}")
            numbers_ok = False
    if numbers_ok:
        if t.reconnect_delay < 0:
            errors.append("tailer.reconnect_delay must be >= 0")
        if t.backoff_factor < 1.0:
            errors.append("tailer.backoff_factor must be >= 1.0")
        if t.max_reconnect_delay < t.reconnect_delay:
            errors.append(
                f"tailer.max_reconnect_delay ({t.max_reconnect_delay}) must be >= "
                f"reconnect_delay ({t.reconnect_delay})"
            )
        if t.connect_timeout <= 0:
            errors.append("tailer.connect_timeout must be > 0")
    if t.idle_timeout is not None and (not _is_number(t.idle_timeout) or t.idle_timeout <= 0):
        errors.append("tailer.idle_timeout must be > 0 when set")
    if not isinstance(t.flush_partial_on_close, bool):
        errors.append("tailer.flush_partial_on_close must be true or false")

    for name in ("interval", "timeout"):
        value = getattr(config.health, name)
        if not _is_number(value) or value <= 0:
            errors.append(f"health.{name} must be > 0")

    if config.logging.level not in _LOG_LEVELS:
        errors.append(f"logging.level must be one of {sorted(_LOG_LEVELS)}")

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
) -> HatchLiveConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if config_dict is not None:
        return _build_config(config_dict)

    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_config()

    if path is None:
        # Return defaults
        return _build_config({})

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    try:
        if path.suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return _build_config(raw)
