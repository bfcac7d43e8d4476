"""CLI: hatchlive logs, health, tui, config validate."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from ..api import HatchClient
from ..config import load_config, validate_config
from ..core.filters import ALL_LEVELS, FilterState
from ..core.health import HealthPoller
from ..core.tailer import LogTailer
from ..formatting import format_entry
from ..types import LEVELS, BufferChange, HatchLiveConfig, HatchLiveError, SessionState


class _SuppressHttpxRequests(logging.Filter):
    """Hide httpx's per-request INFO lines (one per reconnect/poll)."""
    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name.startswith("httpx") and record.levelno <= logging.INFO)


def _configure_logging(config: HatchLiveConfig, args) -> None:
    if getattr(args, "verbose", 0) >= 2:
        level = logging.DEBUG
    elif getattr(args, "verbose", 0) == 1:
        level = logging.INFO
    else:
        level = getattr(logging, config.logging.level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(_SuppressHttpxRequests())


def _load(args, validate: bool = True) -> HatchLiveConfig:
    try:
        config = load_config(args.config)
    except (FileNotFoundError, HatchLiveError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "base_url", None):
        config.daemon.base_url = args.base_url
    if validate:
        errors = validate_config(config)
        if errors:
            print("Error: invalid config:", file=sys.stderr)
            for e in errors:
                print(f"  - {e}", file=sys.stderr)
            sys.exit(1)
    return config


def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


def _filter_from_args(args) -> FilterState:
    levels = frozenset(args.level) if args.level else ALL_LEVELS
    return FilterState(enabled_levels=levels, search_query=args.search or "")


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------

async def _follow_logs(tailer: LogTailer, filter_state: FilterState) -> None:
    """Print matching entries as they arrive until cancelled."""

    def on_change(change: BufferChange) -> None:
        if change.entry is not None and filter_state.matches(change.entry):
            print(format_entry(change.entry), flush=True)

    def on_state(state: SessionState) -> None:
        if state is SessionState.CONNECTED:
            print(f"[connected to {tailer.url}]", file=sys.stderr, flush=True)
        elif state is SessionState.DISCONNECTED and tailer.running:
            print("[disconnected, retrying]", file=sys.stderr, flush=True)

    tailer.subscribe(on_change)
    tailer.on_state_change(on_state)
    async with tailer:
        await asyncio.Event().wait()


async def _collect_logs(tailer: LogTailer, filter_state: FilterState, duration: float) -> list:
    """Tail for *duration* seconds and return the filtered tail."""
    async with tailer:
        await asyncio.sleep(duration)
    return tailer.filtered(filter_state)


def cmd_logs(args):
    """Stream daemon logs (or collect for a while with --no-follow)."""
    config = _load(args)
    _configure_logging(config, args)
    tailer = LogTailer.from_config(config, capacity=args.capacity)
    filter_state = _filter_from_args(args)

    try:
        if args.follow:
            asyncio.run(_follow_logs(tailer, filter_state))
            return
        entries = asyncio.run(_collect_logs(tailer, filter_state, args.duration))
    except KeyboardInterrupt:
        return

    if not entries:
        print("No log entries.")
        if tailer.metrics.sessions_connected == 0:
            print(f"Could not connect to {tailer.url} (is the daemon running?)", file=sys.stderr)
            sys.exit(1)
        return
    shown = entries[-args.lines:] if args.lines > 0 else []
    for entry in shown:
        print(format_entry(entry))
    if args.verbose:
        snap = tailer.metrics.snapshot()
        print(
            f"[{snap['lines_decoded']} decoded, {snap['lines_dropped']} dropped, "
            f"{snap['disconnects']} disconnects]",
            file=sys.stderr,
        )
    if args.verbose >= 2:
        for event in tailer.metrics.events_since(-1):
            details = " ".join(f"{k}={v}" for k, v in event.items() if k not in ("_seq", "ts", "type"))
            print(f"  {event['ts']} {event['type']} {details}", file=sys.stderr)


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------

def cmd_health(args):
    """Show per-service health from the daemon."""
    config = _load(args)
    _configure_logging(config, args)
    poller = HealthPoller(HatchClient.from_config(config), interval=config.health.interval)

    ok = asyncio.run(poller.refresh())
    if not ok:
        print(f"Error: health poll failed: {poller.last_error}", file=sys.stderr)
        sys.exit(1)

    if args.project or args.service:
        if not (args.project and args.service):
            print("Error: --project and --service must be given together", file=sys.stderr)
            sys.exit(1)
        print(poller.status_for(args.project, args.service))
        return

    snapshots = poller.snapshots
    if not snapshots:
        print("No services reported.")
        return

    print(f"{'Project':<20} {'Service':<16} {'Status':<10} {'Address':<24} {'Since':<25}")
    print("-" * 99)
    for s in sorted(snapshots, key=lambda s: s.key):
        print(f"{s.project:<20} {s.service:<16} {s.status:<10} {s.addr:<24} {s.since:<25}")


# ---------------------------------------------------------------------------
# tui / config
# ---------------------------------------------------------------------------

def cmd_tui(args):
    """Launch the interactive log viewer."""
    try:
        from ..tui.app import run_viewer
    except ImportError:
        print("Run: pip install textual", file=sys.stderr)
        sys.exit(1)

    config = _load(args)
    run_viewer(config)


def cmd_config_validate(args):
    """Validate config file."""
    config = _load(args, validate=False)
    errors = validate_config(config)
    if errors:
        print("Config validation errors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)
    print("Config is valid.")
    print(f"  Daemon:    {config.daemon.base_url}")
    print(f"  Capacity:  {config.tailer.capacity}")
    print(f"  Reconnect: {config.tailer.reconnect_delay}s (x{config.tailer.backoff_factor})")
    print(f"  Health:    every {config.health.interval}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hatchlive",
        description="Live log tail and service health for the hatch daemon",
    )
    parser.add_argument("--config", "-c", help="Path to config file")
    parser.add_argument("--base-url", help="Daemon base URL (overrides config)")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More logging (-vv for debug)")

    subparsers = parser.add_subparsers(dest="command")

    # logs
    logs_parser = subparsers.add_parser("logs", help="Tail the daemon log stream")
    logs_parser.add_argument("--level", "-l", action="append", choices=LEVELS,
                             help="Only show this level (repeatable)")
    logs_parser.add_argument("--search", "-s", help="Case-insensitive text filter")
    logs_parser.add_argument("--lines", "-n", type=_non_negative_int, default=50,
                             help="Entries to print with --no-follow")
    logs_parser.add_argument("--no-follow", dest="follow", action="store_false",
                             help="Collect for --duration seconds, print, and exit")
    logs_parser.add_argument("--duration", type=float, default=2.0,
                             help="Seconds to collect with --no-follow")
    logs_parser.add_argument("--capacity", type=_positive_int, help="Tail buffer size")

    # health
    health_parser = subparsers.add_parser("health", help="Show service health")
    health_parser.add_argument("--project", "-p", help="Project name")
    health_parser.add_argument("--service", "-s", help="Service name")

    # tui
    subparsers.add_parser("tui", help="Interactive log viewer")

    # config validate
    config_parser = subparsers.add_parser("config", help="Config operations")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("validate", help="Validate config file")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "logs":
        cmd_logs(args)
    elif args.command == "health":
        cmd_health(args)
    elif args.command == "tui":
        cmd_tui(args)
    elif args.command == "config":
        if args.config_command == "validate":
            cmd_config_validate(args)
        else:
            print("Usage: hatchlive config validate")
            sys.exit(1)


if __name__ == "__main__":
    main()
