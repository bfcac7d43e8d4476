"""Tests for StreamSession: one connection attempt."""

import asyncio

import httpx
import pytest

from conftest import STREAM_URL, ScriptedServer, chunks_body, mock_client, queue_body, sse, stream_response, wait_for
from hatchlive.core.decoder import EntryDecoder
from hatchlive.core.metrics import TailerMetrics
from hatchlive.core.session import StreamSession
from hatchlive.types import SessionPhase, SessionState, StreamConnectError


def make_session(client, sink, **kwargs):
    states = []
    session = StreamSession(
        client, STREAM_URL,
        decoder=EntryDecoder(),
        sink=sink,
        on_state=states.append,
        **kwargs,
    )
    return session, states


@pytest.mark.asyncio
async def test_streams_until_eof():
    server = ScriptedServer([lambda: stream_response(chunks_body([
        sse({"time": "2026-01-15T10:00:00Z", "level": "info", "message": "a"}),
        sse({"level": "error", "message": "b", "code": 7}),
    ]))])
    got = []
    async with mock_client(server) as client:
        session, states = make_session(client, got.append)
        await session.run()

    assert [(e.id, e.message) for e in got] == [(1, "a"), (2, "b")]
    assert got[1].fields["code"] == 7
    assert session.phase is SessionPhase.CLOSED
    assert session.close_reason == "eof"
    assert session.reached_streaming
    assert session.error is None
    assert session.entries_appended == 2
    assert states == [SessionState.CONNECTING, SessionState.CONNECTED, SessionState.DISCONNECTED]


@pytest.mark.asyncio
async def test_sends_event_stream_headers():
    server = ScriptedServer([lambda: stream_response(chunks_body([]))])
    async with mock_client(server) as client:
        session, _ = make_session(client, lambda e: None)
        await session.run()
    request = server.requests[0]
    assert request.method == "GET"
    assert str(request.url) == STREAM_URL
    assert request.headers["accept"] == "text/event-stream"


@pytest.mark.asyncio
async def test_non_success_status_is_rejected():
    server = ScriptedServer([lambda: stream_response(chunks_body([sse({"message": "x"})]), 503)])
    got = []
    async with mock_client(server) as client:
        session, states = make_session(client, got.append)
        await session.run()

    assert got == []
    assert session.close_reason == "rejected"
    assert isinstance(session.error, StreamConnectError)
    assert session.error.status_code == 503
    assert not session.reached_streaming
    assert states == [SessionState.CONNECTING, SessionState.DISCONNECTED]


@pytest.mark.asyncio
async def test_connect_error_closes_session():
    server = ScriptedServer([httpx.ConnectError("connection refused")])
    metrics = TailerMetrics()
    async with mock_client(server) as client:
        session, states = make_session(client, lambda e: None, metrics=metrics)
        await session.run()

    assert session.close_reason == "error"
    assert isinstance(session.error, httpx.ConnectError)
    assert states == [SessionState.CONNECTING, SessionState.DISCONNECTED]
    snap = metrics.snapshot()
    assert snap["sessions_started"] == 1
    assert snap["sessions_connected"] == 0
    assert snap["disconnects"] == 1
    assert "ConnectError" in snap["last_error"]


@pytest.mark.asyncio
async def test_read_error_mid_stream_keeps_earlier_entries():
    queue: asyncio.Queue = asyncio.Queue()
    server = ScriptedServer([lambda: stream_response(queue_body(queue))])
    got = []
    async with mock_client(server) as client:
        session, states = make_session(client, got.append)
        task = asyncio.create_task(session.run())
        await queue.put(sse({"message": "before"}))
        await wait_for(lambda: len(got) == 1)
        await queue.put(httpx.ReadError("connection reset"))
        await task

    assert [e.message for e in got] == ["before"]
    assert session.close_reason == "error"
    assert isinstance(session.error, httpx.ReadError)
    assert states[-1] is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_session_is_single_use():
    server = ScriptedServer([lambda: stream_response(chunks_body([]))])
    async with mock_client(server) as client:
        session, _ = make_session(client, lambda e: None)
        await session.run()
        with pytest.raises(RuntimeError):
            await session.run()
    assert server.calls == 1


@pytest.mark.asyncio
async def test_partial_line_discarded_at_eof_by_default():
    server = ScriptedServer([lambda: stream_response(chunks_body([
        sse({"message": "whole"}),
        b'data: {"message":"tail"}',
    ]))])
    got = []
    async with mock_client(server) as client:
        session, _ = make_session(client, got.append)
        await session.run()
    assert [e.message for e in got] == ["whole"]


@pytest.mark.asyncio
async def test_partial_line_flushed_when_enabled():
    server = ScriptedServer([lambda: stream_response(chunks_body([
        sse({"message": "whole"}),
        b'data: {"message":"tail"}',
    ]))])
    got = []
    async with mock_client(server) as client:
        session, _ = make_session(client, got.append, flush_partial_on_close=True)
        await session.run()
    assert [e.message for e in got] == ["whole", "tail"]


@pytest.mark.asyncio
async def test_event_split_across_chunks():
    payload = sse({"message": "split", "n": 1})
    server = ScriptedServer([lambda: stream_response(chunks_body([payload[:9], payload[9:20], payload[20:]]))])
    got = []
    async with mock_client(server) as client:
        session, _ = make_session(client, got.append)
        await session.run()
    assert [e.message for e in got] == ["split"]


@pytest.mark.asyncio
async def test_malformed_lines_are_skipped_and_counted():
    server = ScriptedServer([lambda: stream_response(chunks_body([
        sse({"message": "a"}),
        b"data: {oops\n\n",
        b": keep-alive\n\n",
        sse({"message": "b"}),
    ]))])
    metrics = TailerMetrics()
    got = []
    async with mock_client(server) as client:
        session, _ = make_session(client, got.append, metrics=metrics)
        await session.run()
    assert [(e.id, e.message) for e in got] == [(1, "a"), (2, "b")]
    assert metrics.lines_decoded == 2
    assert metrics.lines_dropped == 1


@pytest.mark.asyncio
async def test_cancel_flag_stops_appends():
    server = ScriptedServer([lambda: stream_response(chunks_body([
        sse({"message": "a"}) + sse({"message": "b"}) + sse({"message": "c"}),
    ]))])
    got = []
    cancelled = False

    def sink(entry):
        nonlocal cancelled
        got.append(entry)
        cancelled = True

    async with mock_client(server) as client:
        session, _ = make_session(client, sink, is_cancelled=lambda: cancelled)
        await session.run()

    assert [e.message for e in got] == ["a"]
    assert session.close_reason == "cancelled"


@pytest.mark.asyncio
async def test_task_cancellation_closes_and_propagates():
    server = ScriptedServer([lambda: stream_response(chunks_body([sse({"message": "a"})], hang=True))])
    got = []
    async with mock_client(server) as client:
        session, states = make_session(client, got.append)
        task = asyncio.create_task(session.run())
        await wait_for(lambda: len(got) == 1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert session.phase is SessionPhase.CLOSED
    assert session.close_reason == "cancelled"
    assert states[-1] is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_malformed_url_closes_session():
    server = ScriptedServer([lambda: stream_response(chunks_body([]))])
    async with mock_client(server) as client:
        session = StreamSession(
            client, "http://hatch.test:notaport/api/logs",
            decoder=EntryDecoder(), sink=lambda e: None,
        )
        await session.run()
    assert session.phase is SessionPhase.CLOSED
    assert session.close_reason == "error"
    assert isinstance(session.error, httpx.InvalidURL)
    assert server.calls == 0
