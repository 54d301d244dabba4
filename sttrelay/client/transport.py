"""Relay WebSocket client: streams capture output, feeds the session state machine."""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable, Awaitable

import orjson
import websockets
from websockets.exceptions import InvalidHandshake

from sttrelay.config.websocket import (
    WS_CLOSE_NORMAL_CODE,
    WS_CONTROL_IDENTIFY,
    WS_EVENT_SESSION_CREATED,
    WS_CLOSE_UNAUTHORIZED_CODE,
)
from sttrelay.config.session import (
    CLIENT_CLOSE_STOP_REASON,
    SESSION_WATCHDOG_TICK_S,
    SESSION_SILENCE_TIMEOUT_S,
)

from .reconnect import ReconnectPolicy
from .capture import CaptureConfig, CaptureEngine
from .session import ConnectionState, TranscriptSession

logger = logging.getLogger(__name__)

UpdateFn = Callable[[TranscriptSession], None]
SleepFn = Callable[[float], Awaitable[None]]

OUTBOX_MAX_FRAMES = 256
DRAIN_TIMEOUT_S = 2.0
CONNECT_TIMEOUT_S = 10.0


class TranscriptionClient:
    """One recording session against the relay.

    `start()` connects and keeps the socket alive with bounded exponential
    backoff while recording. `stop()` flushes capture, drains queued audio,
    closes with a normal-closure code and cancels any pending reconnect.
    """

    def __init__(
        self,
        url: str,
        *,
        session: TranscriptSession | None = None,
        policy: ReconnectPolicy | None = None,
        capture_config: CaptureConfig | None = None,
        api_key: str | None = None,
        on_update: UpdateFn | None = None,
        connect_fn: Callable[..., Any] | None = None,
        sleep_fn: SleepFn | None = None,
        watchdog_tick_s: float = SESSION_WATCHDOG_TICK_S,
    ) -> None:
        self.url = url
        self.session = session or TranscriptSession(silence_timeout_s=SESSION_SILENCE_TIMEOUT_S)
        self.policy = policy or ReconnectPolicy()
        self.capture = CaptureEngine(self.send_audio, config=capture_config)
        self._api_key = api_key
        self._on_update = on_update
        self._connect_fn = connect_fn or websockets.connect
        self._sleep = sleep_fn or asyncio.sleep
        self._watchdog_tick_s = float(watchdog_tick_s)
        self._outbox: asyncio.Queue[bytes] = asyncio.Queue(maxsize=OUTBOX_MAX_FRAMES)
        # Taken off the outbox but not yet sent; survives a reconnect.
        self._pending: bytes | None = None
        self._ws: Any = None
        self._run_task: asyncio.Task | None = None
        self._watchdog_task: asyncio.Task | None = None
        self.is_recording = False
        self.attempt = 0

    @property
    def state(self) -> ConnectionState:
        return self.session.state

    def send_audio(self, frame: bytes) -> None:
        """Queue a frame without blocking; the oldest frame is dropped when full."""
        if not self.is_recording:
            return
        try:
            self._outbox.put_nowait(frame)
        except asyncio.QueueFull:
            with contextlib.suppress(asyncio.QueueEmpty):
                self._outbox.get_nowait()
                self._outbox.task_done()
            self._outbox.put_nowait(frame)

    async def start(self) -> None:
        if self.is_recording:
            return
        self._discard_outbox()
        self.is_recording = True
        self.attempt = 0
        self.capture.start()
        self._run_task = asyncio.create_task(self._run(), name="relay-connection")
        self._watchdog_task = asyncio.create_task(self._silence_watchdog(), name="silence-watchdog")

    async def stop(self) -> None:
        if not self.is_recording:
            return
        self.capture.stop()
        if self._ws is not None:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._outbox.join(), timeout=DRAIN_TIMEOUT_S)
        self.is_recording = False

        ws, self._ws = self._ws, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close(code=WS_CLOSE_NORMAL_CODE, reason=CLIENT_CLOSE_STOP_REASON)

        for task in (self._run_task, self._watchdog_task):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._run_task, self._watchdog_task):
            if task is not None:
                with contextlib.suppress(BaseException):
                    await task
        self._run_task = self._watchdog_task = None

        dropped = self._discard_outbox()
        if dropped:
            logger.info("discarded %s unsent audio frame(s) on stop", dropped)
        self.session.stop()
        self._notify()

    async def wait_closed(self) -> None:
        if self._run_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task

    async def _run(self) -> None:
        while self.is_recording:
            close_code: int | None = None
            try:
                close_code = await self._connect_and_pump()
            except (OSError, TimeoutError, InvalidHandshake, websockets.ConnectionClosed) as exc:
                logger.warning("relay connection failed: %s", exc)
            fatal = close_code == WS_CLOSE_UNAUTHORIZED_CODE
            self._ws = None
            if not self.is_recording:
                return

            self.session.set_state(ConnectionState.DISCONNECTED)
            self._notify()
            if fatal or not self.policy.should_retry(self.attempt):
                logger.error("giving up on relay after %s attempt(s)", self.attempt)
                self.session.set_state(ConnectionState.ERROR)
                self.is_recording = False
                self.capture.stop()
                self._notify()
                return

            delay = self.policy.delay_for(self.attempt)
            self.attempt += 1
            self.session.set_state(ConnectionState.RECONNECTING)
            self._notify()
            logger.info("reconnecting in %.1fs (attempt %s/%s)", delay, self.attempt, self.policy.max_attempts)
            await self._sleep(delay)

    async def _connect_and_pump(self) -> int | None:
        """Connect once and pump until the socket closes. Returns the close code."""
        self.session.set_state(ConnectionState.CONNECTING)
        self._notify()
        headers = {"X-API-Key": self._api_key} if self._api_key else None
        ws = await asyncio.wait_for(
            self._connect_fn(self.url, additional_headers=headers),
            timeout=CONNECT_TIMEOUT_S,
        )
        self._ws = ws
        self.session.set_state(ConnectionState.CONNECTED)
        self._notify()
        await ws.send(orjson.dumps({"type": "ping", "message": WS_CONTROL_IDENTIFY}).decode("utf-8"))

        sender = asyncio.create_task(self._pump_outbox(ws))
        receiver = asyncio.create_task(self._pump_events(ws))
        try:
            done, _pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sender, receiver):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sender, receiver, return_exceptions=True)
        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None and not isinstance(exc, websockets.ConnectionClosed):
                raise exc
        if ws.close_code is not None and ws.close_code != WS_CLOSE_NORMAL_CODE:
            logger.info("relay closed the connection: %s %s", ws.close_code, ws.close_reason)
        return ws.close_code

    async def _pump_outbox(self, ws: Any) -> None:
        """Send queued frames in order. A frame whose send fails is retried first on the next socket."""
        while True:
            if self._pending is None:
                self._pending = await self._outbox.get()
            await ws.send(self._pending)
            self._pending = None
            self._outbox.task_done()

    def _discard_outbox(self) -> int:
        dropped = 0
        if self._pending is not None:
            self._pending = None
            self._outbox.task_done()
            dropped += 1
        while True:
            try:
                self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            self._outbox.task_done()
            dropped += 1

    async def _pump_events(self, ws: Any) -> None:
        async for raw in ws:
            if isinstance(raw, (bytes, bytearray)):
                continue
            try:
                frame = orjson.loads(raw)
            except orjson.JSONDecodeError:
                logger.debug("ignoring non-JSON relay frame")
                continue
            if not isinstance(frame, dict):
                continue
            if frame.get("type") == WS_EVENT_SESSION_CREATED:
                self.attempt = 0
            if self.session.handle_event(frame):
                self._notify()

    async def _silence_watchdog(self) -> None:
        while self.is_recording:
            await asyncio.sleep(self._watchdog_tick_s)
            if self.session.check_silence() is not None:
                self._notify()

    def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(self.session)
        except Exception:
            logger.exception("session update callback failed")


__all__ = ["TranscriptionClient"]
