"""StreamSession: one connection attempt against the daemon log stream.

State machine::

    IDLE -> CONNECTING -> STREAMING -> CLOSED
                 \\____________________/

A session is single-use. Once CLOSED it stays closed; the tailer builds
a new session (with a new LineFramer) to reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import httpx

from ..types import LogEntry, SessionPhase, SessionState, StreamConnectError
from .decoder import EntryDecoder
from .framer import LineFramer
from .metrics import TailerMetrics

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
}


class StreamSession:
    """Read the log stream once, feeding decoded entries into *sink*.

    ``is_cancelled`` is polled before every append; once it returns True
    the session stops producing entries and closes. ``on_state`` receives
    the consumer-facing SessionState on every transition.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        decoder: EntryDecoder,
        sink: Callable[[LogEntry], None],
        framer: LineFramer | None = None,
        is_cancelled: Callable[[], bool] | None = None,
        on_state: Callable[[SessionState], None] | None = None,
        flush_partial_on_close: bool = False,
        metrics: TailerMetrics | None = None,
    ) -> None:
        self.url = url
        self._client = client
        self._decoder = decoder
        self._sink = sink
        self._framer = framer or LineFramer()
        self._is_cancelled = is_cancelled or (lambda: False)
        self._on_state = on_state
        self._flush_partial = flush_partial_on_close
        self._metrics = metrics
        self.phase = SessionPhase.IDLE
        self.reached_streaming = False
        self.close_reason: str | None = None
        self.error: Exception | None = None
        self.entries_appended = 0

    @property
    def connected(self) -> bool:
        return self.phase is SessionPhase.STREAMING

    async def run(self) -> None:
        """Connect, stream until EOF/error/cancellation, then close.

        Connection and read failures are recorded on ``self.error`` and end
        the session normally. ``asyncio.CancelledError`` closes the session
        and is re-raised.
        """
        if self.phase is not SessionPhase.IDLE:
            raise RuntimeError(f"StreamSession already used (phase={self.phase.value})")

        self._enter(SessionPhase.CONNECTING)
        if self._metrics:
            self._metrics.session_started(self.url)

        reason = "error"
        try:
            async with self._client.stream("GET", self.url, headers=STREAM_HEADERS) as response:
                if not response.is_success:
                    raise StreamConnectError(
                        f"HTTP {response.status_code}", url=self.url,
                        status_code=response.status_code,
                    )
                if self._is_cancelled():
                    reason = "cancelled"
                    return

                self._enter(SessionPhase.STREAMING)
                if self._metrics:
                    self._metrics.session_connected(self.url)

                async for chunk in response.aiter_bytes():
                    if not self._consume(self._framer.feed(chunk)):
                        reason = "cancelled"
                        return

                if self._flush_partial:
                    self._consume(self._framer.flush())
                else:
                    self._framer.reset()
                reason = "eof"
        except asyncio.CancelledError:
            reason = "cancelled"
            raise
        except StreamConnectError as exc:
            reason = "rejected"
            self.error = exc
        except httpx.StreamError as exc:
            # Body could not be read as a stream (closed/consumed)
            reason = "no body"
            self.error = exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL is not an HTTPError
            reason = "error"
            self.error = exc
        finally:
            self._close(reason)

    def _consume(self, lines) -> bool:
        """Decode and append *lines*. Returns False once cancelled."""
        for line in lines:
            if self._is_cancelled():
                return False
            entry = self._decoder.decode(line)
            if entry is None:
                continue
            if self._metrics:
                self._metrics.line_decoded()
            self._sink(entry)
            self.entries_appended += 1
        return not self._is_cancelled()

    def _enter(self, phase: SessionPhase) -> None:
        self.phase = phase
        if phase is SessionPhase.STREAMING:
            self.reached_streaming = True
        state = {
            SessionPhase.CONNECTING: SessionState.CONNECTING,
            SessionPhase.STREAMING: SessionState.CONNECTED,
            SessionPhase.CLOSED: SessionState.DISCONNECTED,
        }.get(phase)
        if state is not None and self._on_state is not None:
            self._on_state(state)

    def _close(self, reason: str) -> None:
        if self.phase is SessionPhase.CLOSED:
            return
        self.close_reason = reason
        error = f"{type(self.error).__name__}: {self.error}" if self.error else None
        if error:
            logger.info("Log stream %s closed (%s): %s", self.url, reason, error)
        else:
            logger.debug("Log stream %s closed (%s)", self.url, reason)
        if self._metrics:
            self._metrics.session_closed(self.url, reason, error)
        self._enter(SessionPhase.CLOSED)
