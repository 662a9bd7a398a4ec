"""
Tests for the voice stream session state machine.

A fake WebSocket is injected through the ``connect`` hook so the tests can
script server frames and inspect what the session sends.
"""

import asyncio
import json

import pytest
from websockets.exceptions import WebSocketException

from tuteliq.errors import ErrorKind, TuteliqError, VoiceStreamError, VoiceStreamErrorKind
from tuteliq.models.voice_stream import (
    VoiceAlertEvent,
    VoiceStreamConfig,
    VoiceStreamContext,
    VoiceStreamHandlers,
    VoiceTranscriptionEvent,
)
from tuteliq.services.voice_stream import VoiceStreamSession, VoiceStreamState

API_KEY = "tuteliq_test_key_123"

_CLOSED = object()


class FakeWebSocket:
    """Scriptable stand-in for a websockets client connection."""

    def __init__(self):
        self.sent = []
        self.incoming = asyncio.Queue()
        self.close_code = None
        self.close_reason = None
        self.close_calls = 0

    async def send(self, frame):
        self.sent.append(frame)

    async def close(self):
        self.close_calls += 1
        if self.close_code is None:
            self.close_code, self.close_reason = 1000, ""
        self.incoming.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    # Server-side scripting

    def push(self, frame):
        self.incoming.put_nowait(json.dumps(frame) if isinstance(frame, dict) else frame)

    def server_close(self, code=1000, reason=""):
        self.close_code, self.close_reason = code, reason
        self.incoming.put_nowait(_CLOSED)

    def json_frames(self):
        return [json.loads(f) for f in self.sent if isinstance(f, str)]

    def audio_frames(self):
        return [f for f in self.sent if isinstance(f, bytes)]


def connector(ws):
    """Connect hook returning ``ws`` and recording the call."""
    calls = []

    async def connect(url, **kwargs):
        calls.append((url, kwargs))
        return ws

    connect.calls = calls
    return connect


class Recorder:
    """Handler set that records every callback."""

    def __init__(self):
        self.events = []
        self.closes = []

    def handlers(self):
        return VoiceStreamHandlers(
            on_ready=self.events.append,
            on_transcription=self.events.append,
            on_alert=self.events.append,
            on_session_summary=self.events.append,
            on_config_updated=self.events.append,
            on_error=self.events.append,
            on_close=lambda code, reason: self.closes.append((code, reason)),
        )


async def settle():
    """Let background reader and writer tasks run."""
    for _ in range(10):
        await asyncio.sleep(0)


READY = {"type": "ready", "session_id": "s1", "config": {"interval_seconds": 10}}
SUMMARY = {
    "type": "session_summary",
    "session_id": "s1",
    "duration_seconds": 42.5,
    "overall_risk": "medium",
    "overall_risk_score": 0.55,
    "total_flushes": 4,
    "transcript": "hello there",
}


async def open_ready_session(ws, recorder=None, config=None):
    session = VoiceStreamSession.open(
        API_KEY,
        config,
        recorder.handlers() if recorder else None,
        url="wss://example.test/voice/stream",
        connect=connector(ws),
    )
    ws.push(READY)
    await session.wait_ready()
    return session


@pytest.mark.asyncio
async def test_full_session_lifecycle():
    """Connect, stream audio, end and receive the summary."""
    ws = FakeWebSocket()
    recorder = Recorder()
    config = VoiceStreamConfig(
        interval_seconds=10,
        analysis_types=["bullying", "grooming"],
        context=VoiceStreamContext(language="en", age_group="13-15"),
    )

    session = await open_ready_session(ws, recorder, config)

    assert session.session_id == "s1"
    assert session.is_active
    assert session.state is VoiceStreamState.READY
    assert ws.json_frames()[0] == {
        "type": "config",
        "interval_seconds": 10,
        "analysis_types": ["bullying", "grooming"],
        "context": {"language": "en", "ageGroup": "13-15"},
    }

    session.send_audio(b"\x00\x01" * 160)
    session.send_audio(bytearray(b"\x02\x03"))
    await settle()
    assert ws.audio_frames() == [b"\x00\x01" * 160, b"\x02\x03"]

    end_task = asyncio.create_task(session.end())
    await settle()
    assert ws.json_frames()[-1] == {"type": "end"}

    ws.push(SUMMARY)
    summary = await end_task

    assert summary.session_id == "s1"
    assert summary.overall_risk == "medium"
    assert summary.total_flushes == 4
    assert session.state is VoiceStreamState.ENDED
    assert not session.is_active

    await session.close()
    await settle()

    # Ended stays distinct from a forced close
    assert session.state is VoiceStreamState.ENDED
    assert recorder.closes == [(1000, "")]
    assert [e.type for e in recorder.events] == ["ready", "session_summary"]


@pytest.mark.asyncio
async def test_connect_sends_bearer_token():
    ws = FakeWebSocket()
    connect = connector(ws)

    session = VoiceStreamSession.open(
        API_KEY, url="wss://example.test/voice/stream", connect=connect
    )
    await settle()

    url, kwargs = connect.calls[0]
    assert url == "wss://example.test/voice/stream"
    assert kwargs["additional_headers"] == {"Authorization": f"Bearer {API_KEY}"}

    await session.close()


@pytest.mark.asyncio
async def test_send_audio_before_ready_fails_without_sending():
    ws = FakeWebSocket()
    session = VoiceStreamSession.open(API_KEY, connect=connector(ws))
    await settle()

    with pytest.raises(VoiceStreamError) as exc_info:
        session.send_audio(b"audio")

    assert exc_info.value.kind is VoiceStreamErrorKind.NOT_CONNECTED
    assert session.state is VoiceStreamState.CONNECTING
    await settle()
    assert ws.sent == []

    await session.close()


@pytest.mark.asyncio
async def test_send_audio_after_close_fails():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    await session.close()

    with pytest.raises(VoiceStreamError) as exc_info:
        session.send_audio(b"audio")
    assert exc_info.value.kind is VoiceStreamErrorKind.NOT_CONNECTED
    assert session.state is VoiceStreamState.CLOSED
    assert ws.audio_frames() == []


@pytest.mark.asyncio
async def test_send_audio_rejects_non_bytes():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    with pytest.raises(TypeError):
        session.send_audio("not bytes")

    await session.close()


@pytest.mark.asyncio
async def test_audio_allowed_while_end_is_pending():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    end_task = asyncio.create_task(session.end())
    await settle()
    session.send_audio(b"tail")
    await settle()
    assert ws.audio_frames() == [b"tail"]

    ws.push(SUMMARY)
    await end_task
    await session.close()


@pytest.mark.asyncio
async def test_close_rejects_pending_end():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    end_task = asyncio.create_task(session.end())
    await settle()
    await session.close()

    with pytest.raises(VoiceStreamError) as exc_info:
        await end_task

    assert exc_info.value.kind is VoiceStreamErrorKind.CLOSED_BEFORE_SUMMARY
    assert exc_info.value.close_code == 1000
    assert session.state is VoiceStreamState.CLOSED
    assert recorder.closes == [(1000, "")]


@pytest.mark.asyncio
async def test_server_close_rejects_pending_end_with_close_info():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    end_task = asyncio.create_task(session.end())
    await settle()
    ws.server_close(1011, "internal error")

    with pytest.raises(VoiceStreamError) as exc_info:
        await end_task

    error = exc_info.value
    assert error.kind is VoiceStreamErrorKind.CLOSED_BEFORE_SUMMARY
    assert error.close_code == 1011
    assert error.close_reason == "internal error"
    assert session.state is VoiceStreamState.CLOSED
    assert session.close_code == 1011
    assert recorder.closes == [(1011, "internal error")]


@pytest.mark.asyncio
async def test_second_end_while_pending_fails():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    first = asyncio.create_task(session.end())
    await settle()

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.end()
    assert exc_info.value.kind is VoiceStreamErrorKind.END_ALREADY_PENDING

    # Only one end frame went out
    assert ws.json_frames().count({"type": "end"}) == 1

    ws.push(SUMMARY)
    await first
    await session.close()


@pytest.mark.asyncio
async def test_end_after_ended_fails():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    end_task = asyncio.create_task(session.end())
    await settle()
    ws.push(SUMMARY)
    await end_task

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.end()
    assert exc_info.value.kind is VoiceStreamErrorKind.NOT_CONNECTED

    await session.close()


@pytest.mark.asyncio
async def test_close_is_idempotent():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    await session.close()
    await session.close()
    await settle()

    assert ws.close_calls == 1
    assert recorder.closes == [(1000, "")]


@pytest.mark.asyncio
async def test_malformed_frames_are_ignored():
    """Bad frames produce no callbacks and do not stop the session."""
    ws = FakeWebSocket()
    recorder = Recorder()
    session = VoiceStreamSession.open(API_KEY, handlers=recorder.handlers(), connect=connector(ws))

    ws.push("not json at all")
    ws.push("[1, 2, 3]")
    ws.push({"type": "something_new", "data": 1})
    ws.push({"type": ["ready"]})
    ws.push({"no_type": True})
    ws.push(b"\xff\xfe")
    await settle()

    assert recorder.events == []
    assert session.state is VoiceStreamState.CONNECTING

    ws.push(READY)
    await session.wait_ready()
    assert [e.type for e in recorder.events] == ["ready"]

    await session.close()


@pytest.mark.asyncio
async def test_bad_event_fields_fall_back_to_defaults():
    """Events with null or mistyped fields are still dispatched."""
    ws = FakeWebSocket()
    recorder = Recorder()
    await open_ready_session(ws, recorder)

    ws.push({"type": "alert", "category": None, "risk_score": "very high", "details": [1]})
    ws.push({"type": "transcription", "text": None, "segments": [1, {"start": None, "text": "hi"}]})
    await settle()

    alert, transcription = recorder.events[1:]
    assert isinstance(alert, VoiceAlertEvent)
    assert alert.category == ""
    assert alert.risk_score == 0.0
    assert alert.details == {}
    assert isinstance(transcription, VoiceTranscriptionEvent)
    assert transcription.text == ""
    assert len(transcription.segments) == 1
    assert transcription.segments[0].start == 0.0
    assert transcription.segments[0].text == "hi"


@pytest.mark.asyncio
async def test_summary_with_null_fields_resolves_end():
    """A summary missing numeric values still completes end()."""
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    end_task = asyncio.create_task(session.end())
    await settle()
    ws.push(dict(SUMMARY, duration_seconds=None, total_flushes=None, overall_risk_score="n/a"))

    summary = await asyncio.wait_for(end_task, timeout=1)

    assert summary.duration_seconds == 0.0
    assert summary.total_flushes == 0
    assert summary.overall_risk_score == 0.0
    assert summary.overall_risk == "medium"
    assert session.state is VoiceStreamState.ENDED

    await session.close()


class FailingSendWebSocket(FakeWebSocket):
    """Connection whose binary sends fail at the transport."""

    async def send(self, frame):
        if isinstance(frame, bytes):
            raise WebSocketException("send failed")
        await super().send(frame)


@pytest.mark.asyncio
async def test_send_failure_closes_session():
    """A failed write closes the socket and reports the close once."""
    ws = FailingSendWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    session.send_audio(b"\x00\x01")
    await settle()

    assert session.state is VoiceStreamState.CLOSED
    assert not session.is_active
    assert ws.close_calls == 1
    assert recorder.closes == [(1000, "")]

    with pytest.raises(VoiceStreamError) as exc_info:
        session.send_audio(b"\x00\x01")
    assert exc_info.value.kind is VoiceStreamErrorKind.NOT_CONNECTED


@pytest.mark.asyncio
async def test_events_dispatched_in_order():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_ready_session(ws, recorder)

    ws.push({
        "type": "transcription",
        "text": "hi",
        "segments": [{"start": 0.0, "end": 1.2, "text": "hi"}],
        "flush_index": 0,
    })
    ws.push({
        "type": "alert",
        "category": "bullying",
        "severity": "high",
        "risk_score": 0.82,
        "details": {"quote": "loser"},
        "flush_index": 0,
    })
    ws.push({"type": "config_updated", "config": {"interval_seconds": 15}})
    ws.push({"type": "error", "code": "TRANSCRIPTION_FAILED", "message": "bad audio"})
    await settle()

    types = [e.type for e in recorder.events]
    assert types == ["ready", "transcription", "alert", "config_updated", "error"]

    transcription = recorder.events[1]
    assert isinstance(transcription, VoiceTranscriptionEvent)
    assert transcription.segments[0].end == 1.2

    alert = recorder.events[2]
    assert isinstance(alert, VoiceAlertEvent)
    assert alert.category == "bullying"
    assert alert.risk_score == 0.82

    # Server error events do not end the session
    assert session.is_active

    await session.close()


@pytest.mark.asyncio
async def test_async_handlers_are_awaited():
    ws = FakeWebSocket()
    seen = []

    async def on_alert(event):
        await asyncio.sleep(0)
        seen.append(event.category)

    session = VoiceStreamSession.open(
        API_KEY, handlers=VoiceStreamHandlers(on_alert=on_alert), connect=connector(ws)
    )
    ws.push(READY)
    await session.wait_ready()

    ws.push({"type": "alert", "category": "unsafe", "severity": "critical", "risk_score": 0.95})
    await settle()

    assert seen == ["unsafe"]
    await session.close()


@pytest.mark.asyncio
async def test_handler_exception_does_not_stop_reader():
    ws = FakeWebSocket()
    seen = []

    def on_transcription(event):
        seen.append(event.flush_index)
        if event.flush_index == 0:
            raise RuntimeError("handler bug")

    session = VoiceStreamSession.open(
        API_KEY,
        handlers=VoiceStreamHandlers(on_transcription=on_transcription),
        connect=connector(ws),
    )
    ws.push(READY)
    await session.wait_ready()

    ws.push({"type": "transcription", "text": "a", "flush_index": 0})
    ws.push({"type": "transcription", "text": "b", "flush_index": 1})
    await settle()

    assert seen == [0, 1]
    assert session.is_active
    await session.close()


@pytest.mark.asyncio
async def test_connection_failure_surfaces_on_wait_ready_and_end():
    recorder = Recorder()

    async def failing_connect(url, **kwargs):
        raise OSError("connection refused")

    session = VoiceStreamSession.open(
        API_KEY, handlers=recorder.handlers(), connect=failing_connect
    )

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.wait_ready()
    assert exc_info.value.kind is VoiceStreamErrorKind.CONNECTION_FAILED
    assert isinstance(exc_info.value.__cause__, OSError)

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.end()
    assert exc_info.value.kind is VoiceStreamErrorKind.CONNECTION_FAILED

    assert session.state is VoiceStreamState.CLOSED
    assert recorder.closes == []


@pytest.mark.asyncio
async def test_server_close_before_ready():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = VoiceStreamSession.open(API_KEY, handlers=recorder.handlers(), connect=connector(ws))

    ws.server_close(4001, "invalid api key")

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.wait_ready()

    assert exc_info.value.kind is VoiceStreamErrorKind.CLOSED_BEFORE_READY
    assert exc_info.value.close_code == 4001
    assert session.state is VoiceStreamState.CLOSED
    assert recorder.closes == [(4001, "invalid api key")]


@pytest.mark.asyncio
async def test_close_while_connecting():
    connected = asyncio.Event()

    async def slow_connect(url, **kwargs):
        await connected.wait()
        return FakeWebSocket()

    session = VoiceStreamSession.open(API_KEY, connect=slow_connect)
    await settle()

    await session.close()

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.wait_ready()
    assert exc_info.value.kind is VoiceStreamErrorKind.CLOSED_BEFORE_READY
    assert session.state is VoiceStreamState.CLOSED


@pytest.mark.asyncio
async def test_context_manager_waits_ready_and_closes():
    ws = FakeWebSocket()
    session = VoiceStreamSession.open(API_KEY, connect=connector(ws))
    ws.push(READY)

    async with session as active:
        assert active.is_active
        active.send_audio(b"chunk")
        await settle()

    assert session.state is VoiceStreamState.CLOSED
    assert ws.close_calls == 1
    assert ws.audio_frames() == [b"chunk"]


@pytest.mark.asyncio
async def test_update_config_queues_frame():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)

    session.update_config(VoiceStreamConfig(interval_seconds=20, analysis_types=["unsafe"]))
    await settle()

    assert ws.json_frames()[-1] == {
        "type": "config",
        "interval_seconds": 20,
        "analysis_types": ["unsafe"],
    }
    assert session.config.interval_seconds == 20

    await session.close()


@pytest.mark.asyncio
async def test_update_config_validates_before_sending():
    ws = FakeWebSocket()
    session = await open_ready_session(ws)
    sent_before = list(ws.sent)

    with pytest.raises(TuteliqError) as exc_info:
        session.update_config(VoiceStreamConfig(interval_seconds=60))
    assert exc_info.value.kind is ErrorKind.VALIDATION

    with pytest.raises(TuteliqError):
        session.update_config(VoiceStreamConfig(analysis_types=["sarcasm"]))

    await settle()
    assert ws.sent == sent_before
    await session.close()


def test_constructor_validates_arguments():
    with pytest.raises(ValueError):
        VoiceStreamSession("")

    with pytest.raises(TuteliqError):
        VoiceStreamSession(API_KEY, VoiceStreamConfig(interval_seconds=2))


@pytest.mark.asyncio
async def test_wait_ready_before_open_fails():
    session = VoiceStreamSession(API_KEY)

    with pytest.raises(VoiceStreamError) as exc_info:
        await session.wait_ready()
    assert exc_info.value.kind is VoiceStreamErrorKind.NOT_CONNECTED
