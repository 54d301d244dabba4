"""Primary WebSocket connection handler orchestration."""

from __future__ import annotations

import uuid
import asyncio
import logging

from fastapi import WebSocket

from sttrelay.state import RuntimeDeps
from sttrelay.errors import UpstreamConnectError
from sttrelay.upstream.events import session_created_frame
from sttrelay.state.connection import ActivityRecord, ClientConnection
from sttrelay.config.websocket import (
    WS_ERROR_UPSTREAM,
    WS_CLOSE_BUSY_CODE,
    WS_CLOSE_NORMAL_CODE,
    WS_ERROR_AUTH_FAILED,
    WS_CLOSE_UNAUTHORIZED_CODE,
    WS_ERROR_SERVER_AT_CAPACITY,
    WS_CLOSE_UPSTREAM_FAILURE_CODE,
    WS_CLOSE_UPSTREAM_CONNECT_REASON,
)

from .auth import authenticate_websocket
from .errors import send_error, safe_send_json, reject_connection
from .message_loop import CLIENT_DISCONNECTED_REASON, run_message_loop

logger = logging.getLogger(__name__)


def _new_client(ws: WebSocket, runtime_deps: RuntimeDeps) -> ClientConnection:
    client_id = uuid.uuid4().hex
    now = runtime_deps.clients.now()
    return ClientConnection(
        id=client_id,
        socket=ws,
        upstream=runtime_deps.upstream_bridge.new_session(),
        created_at=now,
        activity=ActivityRecord(client_id=client_id, session_start=now, last_activity=now),
    )


async def _connect_upstream(conn: ClientConnection, runtime_deps: RuntimeDeps) -> bool:
    timeout_s = runtime_deps.settings.upstream.connect_timeout_s
    try:
        await asyncio.wait_for(conn.upstream.connect(), timeout=timeout_s)
    except TimeoutError:
        logger.warning("client %s: upstream connect timed out after %.1fs", conn.id, timeout_s)
        reason = f"upstream connect timed out after {timeout_s:.0f}s"
    except UpstreamConnectError as exc:
        logger.warning("client %s: upstream connect failed: %s", conn.id, exc.reason)
        reason = exc.reason
    else:
        return True
    await send_error(conn.socket, error_code=WS_ERROR_UPSTREAM, message=reason)
    return False


async def handle_websocket_connection(ws: WebSocket, runtime_deps: RuntimeDeps) -> None:
    if not await authenticate_websocket(ws, expected_api_key=runtime_deps.settings.auth.api_key):
        await reject_connection(
            ws,
            error_code=WS_ERROR_AUTH_FAILED,
            message=(
                "Authentication required. Provide valid API key via 'api_key' query parameter or 'X-API-Key' header."
            ),
            close_code=WS_CLOSE_UNAUTHORIZED_CODE,
        )
        return

    clients = runtime_deps.clients
    conn = _new_client(ws, runtime_deps)
    if not await clients.register(conn):
        await reject_connection(
            ws,
            error_code=WS_ERROR_SERVER_AT_CAPACITY,
            message="Server cannot accept new connections. Please try again later.",
            close_code=WS_CLOSE_BUSY_CODE,
        )
        return

    close_code, close_reason = WS_CLOSE_NORMAL_CODE, CLIENT_DISCONNECTED_REASON
    try:
        await ws.accept()
        logger.info("client %s connected. Active: %s", conn.id, clients.get_connection_count())

        if not await _connect_upstream(conn, runtime_deps):
            close_code, close_reason = WS_CLOSE_UPSTREAM_FAILURE_CODE, WS_CLOSE_UPSTREAM_CONNECT_REASON
            return

        await safe_send_json(
            ws,
            session_created_frame(conn.upstream.session_id or conn.id, runtime_deps.upstream_bridge.provider),
        )
        close_code, close_reason = await run_message_loop(conn, runtime_deps)
    except Exception:
        logger.exception("client %s: connection handler failed", conn.id)
        close_code, close_reason = WS_CLOSE_UPSTREAM_FAILURE_CODE, "internal error"
    finally:
        await clients.evict(conn.id, code=close_code, reason=close_reason)


__all__ = ["handle_websocket_connection"]
