"""Bidirectional pumps between a relay client and its upstream session."""

from __future__ import annotations

import asyncio
import logging
import contextlib

from fastapi import WebSocket, WebSocketDisconnect

from sttrelay.state import RuntimeDeps, ClientConnection
from sttrelay.handlers.throttle import AudioThrottle
from sttrelay.upstream.filters import TranscriptFilter
from sttrelay.upstream.types import UpstreamError, TranscriptEvent, UpstreamTerminated
from sttrelay.upstream.events import (
    pong_frame,
    transcript_frames,
    session_ended_frame,
    client_identified_frame,
)
from sttrelay.config.websocket import (
    WS_KEY_TYPE,
    WS_KEY_MESSAGE,
    WS_CONTROL_PING,
    WS_CONTROL_PONG,
    WS_ERROR_UPSTREAM,
    WS_CLOSE_NORMAL_CODE,
    WS_CONTROL_IDENTIFY,
    WS_ERROR_INVALID_MESSAGE,
    WS_CLOSE_UPSTREAM_FAILURE_CODE,
    WS_CLOSE_UPSTREAM_ENDED_REASON,
)

from .parser import classify_frame
from .errors import send_error, safe_send_json

logger = logging.getLogger(__name__)

CLIENT_DISCONNECTED_REASON = "client disconnected"


def create_audio_throttle(runtime_deps: RuntimeDeps) -> AudioThrottle:
    limits = runtime_deps.settings.limits
    return AudioThrottle(
        limit=limits.audio_throttle_limit,
        window_seconds=limits.audio_throttle_window_s,
        keepalive_max_bytes=limits.keepalive_max_bytes,
    )


async def _handle_control_message(ws: WebSocket, conn: ClientConnection, control: dict, provider: str) -> None:
    msg_type = control[WS_KEY_TYPE]
    if msg_type == WS_CONTROL_PING:
        if control.get(WS_KEY_MESSAGE) == WS_CONTROL_IDENTIFY:
            await safe_send_json(ws, client_identified_frame(conn.id, provider))
        else:
            await safe_send_json(ws, pong_frame())
        return
    if msg_type == WS_CONTROL_PONG:
        return
    await send_error(
        ws,
        error_code=WS_ERROR_INVALID_MESSAGE,
        message=f"message type '{msg_type}' is not supported",
    )


async def _pump_client(conn: ClientConnection, runtime_deps: RuntimeDeps, throttle: AudioThrottle) -> None:
    """Read client frames until the socket closes; forward admitted audio upstream."""
    ws: WebSocket = conn.socket
    provider = runtime_deps.upstream_bridge.provider
    while not conn.is_closed:
        message = await ws.receive()
        if message.get("type") == "websocket.disconnect":
            return
        frame = classify_frame(text=message.get("text"), data=message.get("bytes"))
        conn.activity.touch(runtime_deps.clients.now())

        if frame.kind == "control" and frame.control is not None:
            await _handle_control_message(ws, conn, frame.control, provider)
            continue
        if not frame.audio or not throttle.admit(frame.audio):
            continue
        await conn.upstream.send_audio(frame.audio)


async def _pump_upstream(conn: ClientConnection, transcript_filter: TranscriptFilter) -> None:
    """Forward filtered upstream events to the client, in arrival order."""
    ws: WebSocket = conn.socket
    async for event in conn.upstream.events():
        if isinstance(event, TranscriptEvent):
            if not transcript_filter.accepts(event):
                logger.debug(
                    "client %s: filtered %s %r (confidence=%s)",
                    conn.id,
                    event.kind,
                    event.text,
                    event.confidence,
                )
                continue
            for frame in transcript_frames(event):
                await safe_send_json(ws, frame)
        elif isinstance(event, UpstreamError):
            logger.warning("client %s: upstream error: %s", conn.id, event.message)
            await send_error(ws, error_code=WS_ERROR_UPSTREAM, message=event.message)
        elif isinstance(event, UpstreamTerminated):
            logger.info("client %s: upstream terminated (audio=%ss)", conn.id, event.audio_duration_s)
            await safe_send_json(ws, session_ended_frame(event.audio_duration_s))
            return


def _close_for(task: asyncio.Task, *, upstream: bool, client_id: str) -> tuple[int, str]:
    exc = None if task.cancelled() else task.exception()
    if exc is not None and not isinstance(exc, WebSocketDisconnect):
        logger.error("client %s: %s pump failed", client_id, "upstream" if upstream else "client", exc_info=exc)
        return WS_CLOSE_UPSTREAM_FAILURE_CODE, WS_CLOSE_UPSTREAM_ENDED_REASON
    if upstream:
        return WS_CLOSE_UPSTREAM_FAILURE_CODE, WS_CLOSE_UPSTREAM_ENDED_REASON
    return WS_CLOSE_NORMAL_CODE, CLIENT_DISCONNECTED_REASON


async def run_message_loop(conn: ClientConnection, runtime_deps: RuntimeDeps) -> tuple[int, str]:
    """Run both pumps until one ends or the connection is closed elsewhere.

    Returns the close code and reason the caller should evict with.
    """
    throttle = create_audio_throttle(runtime_deps)
    client_task = asyncio.create_task(_pump_client(conn, runtime_deps, throttle), name=f"client-{conn.id}")
    upstream_task = asyncio.create_task(
        _pump_upstream(conn, runtime_deps.transcript_filter),
        name=f"upstream-{conn.id}",
    )
    closed_task = asyncio.create_task(conn.closed.wait())
    conn.tasks.extend([client_task, upstream_task])

    try:
        done, _pending = await asyncio.wait(
            {client_task, upstream_task, closed_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for task in (client_task, upstream_task, closed_task):
            if not task.done():
                task.cancel()
        for task in (client_task, upstream_task, closed_task):
            with contextlib.suppress(BaseException):
                await task

    if throttle.dropped:
        logger.info("client %s: %s audio frame(s) throttled", conn.id, throttle.dropped)

    if closed_task in done or conn.is_closed:
        return conn.close_code or WS_CLOSE_NORMAL_CODE, conn.close_reason or CLIENT_DISCONNECTED_REASON
    if client_task in done:
        return _close_for(client_task, upstream=False, client_id=conn.id)
    return _close_for(upstream_task, upstream=True, client_id=conn.id)


__all__ = ["CLIENT_DISCONNECTED_REASON", "create_audio_throttle", "run_message_loop"]
