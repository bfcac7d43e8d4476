"""HealthPoller: fixed-interval fetch of per-service health snapshots."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

import httpx

from ..api import HatchClient
from ..types import HatchLiveError, HealthSnapshot

logger = logging.getLogger(__name__)

HealthListener = Callable[[list[HealthSnapshot]], None]


class HealthPoller:
    """Keep the latest health list and answer (project, service) lookups.

    Every poll replaces the list wholesale. A failed poll keeps the
    previous list (stale beats empty) and is only logged at DEBUG.
    """

    DEFAULT_INTERVAL = 10.0

    def __init__(self, client: HatchClient, interval: float = DEFAULT_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.client = client
        self.interval = interval
        self._snapshots: list[HealthSnapshot] = []
        self._listeners: list[HealthListener] = []
        self._task: asyncio.Task | None = None
        self.polls = 0
        self.failures = 0
        self.last_error: Exception | None = None

    @property
    def snapshots(self) -> list[HealthSnapshot]:
        return list(self._snapshots)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def lookup(self, project: str, service: str) -> HealthSnapshot | None:
        """First snapshot matching exactly, or None (treat as unknown)."""
        for snap in self._snapshots:
            if snap.project == project and snap.service == service:
                return snap
        return None

    def status_for(self, project: str, service: str) -> str:
        snap = self.lookup(project, service)
        return snap.status if snap else "unknown"

    def subscribe(self, listener: HealthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> bool:
        """Poll once. Returns True if the list was replaced."""
        self.polls += 1
        try:
            snapshots = await self.client.get_health()
        except (HatchLiveError, httpx.HTTPError) as e:
            self.failures += 1
            self.last_error = e
            logger.debug("Health poll failed, keeping %d previous snapshots: %s",
                         len(self._snapshots), e)
            return False

        self.last_error = None
        self._snapshots = snapshots
        for listener in list(self._listeners):
            try:
                listener(list(snapshots))
            except Exception:
                logger.exception("Health listener %r failed", listener)
        return True

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="hatchlive-health")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)
