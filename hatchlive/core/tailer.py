"""LogTailer: owns the tail buffer, the stream session and reconnection."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

import httpx

from ..types import BufferChange, HatchLiveConfig, LogEntry, SessionState, TailerConfig
from .buffer import TailBuffer
from .decoder import EntryDecoder
from .filters import FilterState
from .framer import LineFramer
from .metrics import TailerMetrics
from .session import StreamSession

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], None]


class ReconnectPolicy:
    """Delay before the next session after a disconnect.

    With the default ``backoff_factor`` of 1.0 every wait is exactly
    ``delay``. A larger factor grows the wait geometrically up to
    ``max_delay``; ``reset()`` (called once a session reaches STREAMING)
    starts over from ``delay``.
    """

    def __init__(
        self,
        delay: float = 3.0,
        backoff_factor: float = 1.0,
        max_delay: float = 30.0,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        if backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")
        self.delay = delay
        self.backoff_factor = backoff_factor
        self.max_delay = max(max_delay, delay)
        self._attempt = 0

    @classmethod
    def from_config(cls, config: TailerConfig) -> ReconnectPolicy:
        return cls(
            delay=config.reconnect_delay,
            backoff_factor=config.backoff_factor,
            max_delay=config.max_reconnect_delay,
        )

    def next_delay(self) -> float:
        wait = self.delay * (self.backoff_factor ** self._attempt)
        self._attempt += 1
        return min(wait, self.max_delay)

    def reset(self) -> None:
        self._attempt = 0


class LogTailer:
    """Live tail of the daemon log stream.

    Lifecycle is explicit: ``await start()`` spawns one background task
    that runs a StreamSession, waits the reconnect delay when it closes,
    and starts a fresh session (new LineFramer, same buffer, same id
    counter). ``await stop()`` cancels the pending wait and the in-flight
    read; after it returns no further buffer mutation happens.

    Consumers read ``entries()`` / ``filtered()`` and ``connected``, call
    ``clear()``, and subscribe to buffer and connection changes.
    """

    def __init__(
        self,
        url: str,
        *,
        capacity: int = TailBuffer.DEFAULT_CAPACITY,
        buffer: TailBuffer | None = None,
        reconnect: ReconnectPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | None = None,
        flush_partial_on_close: bool = False,
        metrics: TailerMetrics | None = None,
    ) -> None:
        self.url = url
        self.buffer = buffer or TailBuffer(capacity)
        self.reconnect = reconnect or ReconnectPolicy()
        self.metrics = metrics or TailerMetrics()
        self.decoder = EntryDecoder(on_drop=self.metrics.line_dropped)
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout or httpx.Timeout(None, connect=5.0)
        self._flush_partial = flush_partial_on_close
        self._state = SessionState.DISCONNECTED
        self._state_listeners: list[StateListener] = []
        self._task: asyncio.Task | None = None
        self._stopping = False
        self._generation = 0
        self._session: StreamSession | None = None

    @classmethod
    def from_config(
        cls,
        config: HatchLiveConfig,
        client: httpx.AsyncClient | None = None,
        capacity: int | None = None,
    ) -> LogTailer:
        tc = config.tailer
        return cls(
            config.logs_url,
            capacity=capacity or tc.capacity,
            reconnect=ReconnectPolicy.from_config(tc),
            client=client,
            timeout=httpx.Timeout(None, connect=tc.connect_timeout, read=tc.idle_timeout),
            flush_partial_on_close=tc.flush_partial_on_close,
        )

    # -- consumer surface --

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def entries(self) -> list[LogEntry]:
        return self.buffer.snapshot()

    def filtered(self, filter_state: FilterState) -> list[LogEntry]:
        return filter_state.apply(self.buffer.snapshot())

    def clear(self) -> None:
        """Empty the tail. Ids keep increasing; the session is untouched."""
        self.buffer.clear()

    def subscribe(self, listener: Callable[[BufferChange], None]) -> Callable[[], None]:
        return self.buffer.subscribe(listener)

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        """Register a connection-state listener; returns an unsubscribe callable."""
        self._state_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return unsubscribe

    # -- lifecycle --

    async def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        self._task = asyncio.create_task(self._run(), name=f"hatchlive-tailer:{self.url}")
        self._task.add_done_callback(self._on_task_done)

    async def stop(self) -> None:
        """Tear down: no reconnect, no further appends. Idempotent."""
        self._stopping = True
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._session = None
        self._set_state(SessionState.DISCONNECTED)
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> LogTailer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # -- internals --

    async def _run(self) -> None:
        while not self._stopping:
            self._generation += 1
            generation = self._generation
            session = StreamSession(
                self._client,
                self.url,
                decoder=self.decoder,
                sink=self._append,
                framer=LineFramer(),
                is_cancelled=lambda: self._stopping or generation != self._generation,
                on_state=lambda state: self._on_session_state(generation, state),
                flush_partial_on_close=self._flush_partial,
                metrics=self.metrics,
            )
            self._session = session
            await session.run()

            if self._stopping:
                break
            if session.reached_streaming:
                self.reconnect.reset()
            delay = self.reconnect.next_delay()
            logger.debug("Reconnecting to %s in %.1fs", self.url, delay)
            await asyncio.sleep(delay)

    def _append(self, entry: LogEntry) -> None:
        if self._stopping:
            return
        self.buffer.append(entry)

    def _on_session_state(self, generation: int, state: SessionState) -> None:
        # A superseded session must not flip the flag of its successor
        if generation != self._generation or self._stopping:
            return
        self._set_state(state)

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Log tailer for %s stopped unexpectedly: %s", self.url, exc, exc_info=exc)
            self._set_state(SessionState.DISCONNECTED)
