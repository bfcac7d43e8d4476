"""Shared fixtures for hatchlive tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from hatchlive.config import load_config
from hatchlive.types import HatchLiveConfig, LogEntry

STREAM_URL = "http://hatch.test/api/logs"
HEALTH_URL = "http://hatch.test/api/health"


def sse(payload: dict | str) -> bytes:
    """Encode one event the way the daemon writes it."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {body}\n\n".encode()


def make_entry(id: int, level: str = "info", message: str = "", **fields) -> LogEntry:
    return LogEntry(id=id, timestamp="2026-01-15T10:00:00Z", level=level, message=message, fields=fields)


async def queue_body(queue: asyncio.Queue) -> AsyncIterator[bytes]:
    """Response body fed from *queue*. ``None`` ends the stream, an
    exception instance is raised as a read failure."""
    while True:
        item = await queue.get()
        if item is None:
            return
        if isinstance(item, BaseException):
            raise item
        yield item


async def chunks_body(chunks: list[bytes], hang: bool = False) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk
    if hang:
        await asyncio.Event().wait()


def stream_response(body: AsyncIterator[bytes], status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        content=body,
    )


class ScriptedServer:
    """MockTransport handler serving one scripted response per request.

    Each script item is a callable ``() -> httpx.Response`` or an exception
    to raise. The last item repeats once the script runs out.
    """

    def __init__(self, script: list[Callable[[], httpx.Response] | Exception]) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        idx = min(len(self.requests) - 1, len(self.script) - 1)
        item = self.script[idx]
        if isinstance(item, Exception):
            raise item
        return item()

    @property
    def calls(self) -> int:
        return len(self.requests)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* is true (fails the test on timeout)."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached within timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def sample_config(no_env_base_url) -> HatchLiveConfig:
    return load_config(config_dict={
        "daemon": {"base_url": "http://hatch.test"},
        "tailer": {"capacity": 50, "reconnect_delay": 0.01},
        "health": {"interval": 0.05},
    })


@pytest.fixture
def no_env_base_url(monkeypatch):
    monkeypatch.delenv("HATCHLIVE_BASE_URL", raising=False)
