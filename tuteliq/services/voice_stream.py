"""
Tuteliq voice streaming session over WebSocket.

A session pushes raw audio frames to the voice moderation endpoint and
receives JSON events back (transcription flushes, safety alerts and a final
session summary). Outbound frames go through a single FIFO drained by a
writer task; inbound frames are handled by one reader loop so handlers see
events in the order the server sent them.
"""

import asyncio
import enum
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import settings
from ..errors import VoiceStreamError, VoiceStreamErrorKind
from ..models.voice_stream import (
    VoiceReadyEvent,
    VoiceSessionSummaryEvent,
    VoiceStreamConfig,
    VoiceStreamEvent,
    VoiceStreamHandlers,
    parse_voice_event,
)
from ..utils.validation import validate_voice_config

logger = logging.getLogger(__name__)

# Close code reported when the transport ends without a close frame
ABNORMAL_CLOSURE = 1006

Frame = Union[bytes, str]
Connector = Callable[..., Awaitable[Any]]


class VoiceStreamState(str, enum.Enum):
    CONNECTING = "connecting"
    READY = "ready"
    ENDED = "ended"
    CLOSED = "closed"


TERMINAL_STATES = frozenset({VoiceStreamState.ENDED, VoiceStreamState.CLOSED})


@dataclass
class _SessionState:
    """Mutable state owned by a single VoiceStreamSession."""

    config: Optional[VoiceStreamConfig] = None
    ws: Any = None
    state: VoiceStreamState = VoiceStreamState.CONNECTING
    session_id: Optional[str] = None
    ready: Optional[asyncio.Future] = None
    pending_summary: Optional[asyncio.Future] = None
    outbound: asyncio.Queue = field(default_factory=asyncio.Queue)
    close_requested: bool = False
    close_reported: bool = False
    close_code: Optional[int] = None
    close_reason: Optional[str] = None


def _retrieve_exception(future: asyncio.Future) -> None:
    # Marks a failed readiness future as observed when nobody awaits it
    if not future.cancelled():
        future.exception()


def _close_info(ws: Any) -> Tuple[int, str]:
    code = getattr(ws, "close_code", None)
    reason = getattr(ws, "close_reason", None)
    return (code if code is not None else ABNORMAL_CLOSURE), (reason or "")


class VoiceStreamSession:
    """
    Live voice moderation session.

    Lifecycle: connecting -> ready -> (transcription/alert events) -> ended,
    with closed reachable from any non-terminal state. Audio and config
    updates are accepted only while the session is ready.

    Example:
        >>> session = VoiceStreamSession.open(api_key, handlers=VoiceStreamHandlers(
        ...     on_alert=lambda event: print(event.category, event.severity),
        ... ))
        >>> await session.wait_ready()
        >>> session.send_audio(chunk)
        >>> summary = await session.end()
        >>> await session.close()
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[VoiceStreamConfig] = None,
        handlers: Optional[VoiceStreamHandlers] = None,
        *,
        url: Optional[str] = None,
        connect: Optional[Connector] = None,
    ):
        """
        Create an unopened session. Use :meth:`open` to create and start one.

        Args:
            api_key: Tuteliq API key, sent as a bearer token on connect
            config: Initial session configuration, sent once the socket opens
            handlers: Event callbacks (plain functions or coroutine functions)
            url: Voice stream endpoint (default: settings.VOICE_STREAM_URL)
            connect: WebSocket connector; defaults to websockets' asyncio client
        """
        if not api_key:
            raise ValueError("API key is required")
        if config is not None:
            validate_voice_config(config)

        self._api_key = api_key
        self._url = url or settings.VOICE_STREAM_URL
        self._handlers = handlers or VoiceStreamHandlers()
        self._connect = connect or ws_connect
        self._state = _SessionState(config=config)
        self._run_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None

    @classmethod
    def open(
        cls,
        api_key: str,
        config: Optional[VoiceStreamConfig] = None,
        handlers: Optional[VoiceStreamHandlers] = None,
        *,
        url: Optional[str] = None,
        connect: Optional[Connector] = None,
    ) -> "VoiceStreamSession":
        """
        Start a session and return it immediately.

        The connection and handshake proceed in the background; await
        :meth:`wait_ready` to know when audio can be sent. Must be called
        from inside a running event loop.
        """
        session = cls(api_key, config, handlers, url=url, connect=connect)
        session._start()
        return session

    # Read-only observers

    @property
    def session_id(self) -> Optional[str]:
        """Server-assigned session id, None until the ready event."""
        return self._state.session_id

    @property
    def is_active(self) -> bool:
        return self._state.state is VoiceStreamState.READY and not self._state.close_requested

    @property
    def state(self) -> VoiceStreamState:
        return self._state.state

    @property
    def config(self) -> Optional[VoiceStreamConfig]:
        return self._state.config

    @property
    def close_code(self) -> Optional[int]:
        return self._state.close_code

    @property
    def close_reason(self) -> Optional[str]:
        return self._state.close_reason

    # Public operations

    async def wait_ready(self) -> VoiceReadyEvent:
        """
        Wait for the server's ready event.

        Raises:
            VoiceStreamError: CONNECTION_FAILED if the socket could not be
                opened, CLOSED_BEFORE_READY if it closed before the handshake
        """
        ready = self._state.ready
        if ready is None:
            raise VoiceStreamError(
                VoiceStreamErrorKind.NOT_CONNECTED, "Voice stream has not been opened"
            )
        return await asyncio.shield(ready)

    def send_audio(self, data: bytes) -> None:
        """
        Queue a binary audio frame.

        Raises:
            VoiceStreamError: NOT_CONNECTED if the session is not ready;
                nothing is queued in that case
        """
        self._ensure_active()
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("audio data must be bytes-like")
        self._state.outbound.put_nowait(bytes(data))

    def update_config(self, config: VoiceStreamConfig) -> None:
        """Queue a config frame changing interval, analysis types or context mid-session."""
        self._ensure_active()
        validate_voice_config(config)
        self._state.config = config
        self._state.outbound.put_nowait(json.dumps(config.to_message()))
        logger.info(f"[Voice] Config update queued: {config.to_message()}")

    async def end(self) -> VoiceSessionSummaryEvent:
        """
        Signal end of audio and wait for the session summary.

        There is no built-in timeout; wrap in ``asyncio.wait_for`` if needed.

        Raises:
            VoiceStreamError: NOT_CONNECTED if the session is not ready,
                END_ALREADY_PENDING if another end() is waiting,
                CLOSED_BEFORE_SUMMARY if the connection closes first,
                or the connection failure if the session never became ready
        """
        await self.wait_ready()
        self._ensure_active()

        state = self._state
        if state.pending_summary is not None:
            raise VoiceStreamError(
                VoiceStreamErrorKind.END_ALREADY_PENDING,
                "end() is already waiting for a session summary",
            )

        pending = asyncio.get_running_loop().create_future()
        state.pending_summary = pending
        state.outbound.put_nowait(json.dumps({"type": "end"}))
        logger.info(f"[Voice] End of audio sent for session {state.session_id}")

        try:
            return await pending
        finally:
            if state.pending_summary is pending:
                state.pending_summary = None

    async def close(self) -> None:
        """
        Force-close the connection. Idempotent.

        Queued frames are dropped and a pending end() fails with
        CLOSED_BEFORE_SUMMARY. Does not wait for the summary.
        """
        state = self._state
        if state.close_requested:
            return
        state.close_requested = True
        logger.info("[Voice] Closing voice stream connection")

        if state.state not in TERMINAL_STATES:
            state.state = VoiceStreamState.CLOSED
        self._stop_writer()

        ws = state.ws
        if ws is None:
            # Still connecting: abandon the attempt
            if self._run_task is not None and not self._run_task.done():
                self._run_task.cancel()
            self._fail_ready(
                VoiceStreamError(
                    VoiceStreamErrorKind.CLOSED_BEFORE_READY,
                    "Voice stream closed before the session was ready",
                )
            )
            return

        try:
            await ws.close()
        except (WebSocketException, OSError) as e:
            logger.error(f"[Voice] Error closing WebSocket: {e}")

        await self._handle_close(*_close_info(ws))

    async def __aenter__(self) -> "VoiceStreamSession":
        await self.wait_ready()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Connection lifecycle

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._state.ready = loop.create_future()
        self._state.ready.add_done_callback(_retrieve_exception)
        self._run_task = loop.create_task(self._run())

    async def _run(self) -> None:
        state = self._state
        try:
            ws = await self._connect(
                self._url,
                additional_headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except Exception as e:
            logger.error(f"[Voice] Failed to connect to voice stream: {e}")
            state.state = VoiceStreamState.CLOSED
            error = VoiceStreamError(
                VoiceStreamErrorKind.CONNECTION_FAILED,
                f"Failed to connect to voice stream: {e}",
            )
            error.__cause__ = e
            self._fail_ready(error)
            return

        state.ws = ws
        logger.info(f"[Voice] Connected to {self._url}")

        try:
            if state.config is not None:
                await ws.send(json.dumps(state.config.to_message()))
            self._writer_task = asyncio.create_task(self._write_loop(ws))

            async for message in ws:
                await self._handle_message(message)
        except ConnectionClosed as e:
            logger.debug(f"[Voice] Connection closed during receive: {e}")
        except WebSocketException as e:
            logger.error(f"[Voice] WebSocket error in receive: {e}")

        await self._handle_close(*_close_info(ws))

    async def _write_loop(self, ws: Any) -> None:
        outbound = self._state.outbound
        try:
            while True:
                frame: Frame = await outbound.get()
                await ws.send(frame)
        except ConnectionClosed:
            logger.debug("[Voice] Writer stopped: connection closed")
        except (WebSocketException, OSError) as e:
            logger.error(f"[Voice] Failed to send frame, closing session: {e}")
            state = self._state
            if state.state not in TERMINAL_STATES:
                state.state = VoiceStreamState.CLOSED
            # The reader loop sees the close and reports it
            try:
                await ws.close()
            except (WebSocketException, OSError) as close_error:
                logger.error(f"[Voice] Error closing WebSocket: {close_error}")

    def _stop_writer(self) -> None:
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()

    async def _handle_close(self, code: int, reason: str) -> None:
        state = self._state
        if state.close_reported:
            return
        state.close_reported = True
        state.close_code = code
        state.close_reason = reason

        if state.state not in TERMINAL_STATES:
            state.state = VoiceStreamState.CLOSED
        self._stop_writer()
        logger.info(f"[Voice] Connection closed (code: {code}, reason: {reason!r})")

        self._fail_ready(
            VoiceStreamError(
                VoiceStreamErrorKind.CLOSED_BEFORE_READY,
                f"Connection closed before the session was ready (code: {code})",
                close_code=code,
                close_reason=reason,
            )
        )

        pending = state.pending_summary
        state.pending_summary = None
        if pending is not None and not pending.done():
            pending.set_exception(
                VoiceStreamError(
                    VoiceStreamErrorKind.CLOSED_BEFORE_SUMMARY,
                    f"Connection closed before session summary (code: {code})",
                    close_code=code,
                    close_reason=reason,
                )
            )

        await self._dispatch(self._handlers.on_close, code, reason)

    def _fail_ready(self, error: VoiceStreamError) -> None:
        ready = self._state.ready
        if ready is not None and not ready.done():
            ready.set_exception(error)

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise VoiceStreamError(
                VoiceStreamErrorKind.NOT_CONNECTED, "Voice stream is not connected"
            )

    # Inbound events

    async def _handle_message(self, message: Union[str, bytes]) -> None:
        if isinstance(message, (bytes, bytearray, memoryview)):
            try:
                message = bytes(message).decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("[Voice] Ignoring undecodable binary frame")
                return

        try:
            data = json.loads(message)
        except ValueError:
            # Non-JSON frames (keepalive noise) are not errors
            logger.debug("[Voice] Ignoring non-JSON frame")
            return

        if not isinstance(data, dict):
            logger.debug("[Voice] Ignoring non-object JSON frame")
            return

        event = parse_voice_event(data)
        if event is None:
            logger.debug(f"[Voice] Ignoring unknown event type {data.get('type')!r}")
            return

        await self._handle_event(event)

    async def _handle_event(self, event: VoiceStreamEvent) -> None:
        state = self._state
        handlers = self._handlers

        if event.type == "ready":
            state.session_id = event.session_id
            if state.state is VoiceStreamState.CONNECTING and not state.close_requested:
                state.state = VoiceStreamState.READY
            if state.ready is not None and not state.ready.done():
                state.ready.set_result(event)
            logger.info(f"[Voice] Session ready: {event.session_id}")
            await self._dispatch(handlers.on_ready, event)

        elif event.type == "transcription":
            logger.debug(f"[Voice] Transcription flush {event.flush_index}")
            await self._dispatch(handlers.on_transcription, event)

        elif event.type == "alert":
            logger.warning(
                f"[Voice] Alert: {event.category} ({event.severity}, "
                f"risk {event.risk_score:.2f}) in flush {event.flush_index}"
            )
            await self._dispatch(handlers.on_alert, event)

        elif event.type == "session_summary":
            pending = state.pending_summary
            if pending is not None and not pending.done():
                state.state = VoiceStreamState.ENDED
                state.pending_summary = None
                pending.set_result(event)
            logger.info(
                f"[Voice] Session summary: {event.overall_risk} "
                f"({event.total_flushes} flushes, {event.duration_seconds:.1f}s)"
            )
            await self._dispatch(handlers.on_session_summary, event)

        elif event.type == "config_updated":
            await self._dispatch(handlers.on_config_updated, event)

        elif event.type == "error":
            logger.error(f"[Voice] Server error {event.code}: {event.message}")
            await self._dispatch(handlers.on_error, event)

    async def _dispatch(self, handler: Optional[Callable[..., Any]], *args: Any) -> None:
        if handler is None:
            return
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"[Voice] Event handler raised: {e}", exc_info=True)


def open_voice_stream(
    api_key: str,
    config: Optional[VoiceStreamConfig] = None,
    handlers: Optional[VoiceStreamHandlers] = None,
    *,
    url: Optional[str] = None,
    connect: Optional[Connector] = None,
) -> VoiceStreamSession:
    """Open a voice streaming session. See :meth:`VoiceStreamSession.open`."""
    return VoiceStreamSession.open(api_key, config, handlers, url=url, connect=connect)
