"""Relay client registry and admission control.

The registry is the only state shared between client tasks and the sweeper.
Every mutation happens under one `asyncio.Lock`; socket closes happen outside
of it so a slow peer cannot stall admission.
"""

from __future__ import annotations

import time
import asyncio
import logging

from sttrelay.state.connection import ClientConnection
from sttrelay.config.websocket import WS_CLOSE_NORMAL_CODE, WS_CLOSE_SHUTDOWN_REASON

from .limits import TimeFn

logger = logging.getLogger(__name__)


class ClientRegistry:
    def __init__(self, *, max_connections: int, now_fn: TimeFn | None = None) -> None:
        self._max = max(1, int(max_connections))
        self._now = now_fn or time.monotonic
        self._lock = asyncio.Lock()
        self._clients: dict[str, ClientConnection] = {}

    def now(self) -> float:
        return self._now()

    async def register(self, conn: ClientConnection) -> bool:
        """Admit a client (before accepting its socket). False when at capacity."""
        async with self._lock:
            if conn.id in self._clients:
                return True
            if len(self._clients) >= self._max:
                return False
            self._clients[conn.id] = conn
            return True

    async def evict(self, client_id: str, *, code: int, reason: str) -> bool:
        """Remove a client and close it. Safe to call any number of times."""
        async with self._lock:
            conn = self._clients.pop(client_id, None)
        if conn is None:
            return False
        await conn.close(code, reason)
        logger.info("client %s evicted (%s). Active: %s", client_id, reason, self.get_connection_count())
        return True

    def get(self, client_id: str) -> ClientConnection | None:
        return self._clients.get(client_id)

    def snapshot(self) -> list[ClientConnection]:
        return list(self._clients.values())

    def get_connection_count(self) -> int:
        return len(self._clients)

    async def close_all(self, *, code: int = WS_CLOSE_NORMAL_CODE, reason: str = WS_CLOSE_SHUTDOWN_REASON) -> None:
        for conn in self.snapshot():
            await self.evict(conn.id, code=code, reason=reason)


__all__ = ["ClientRegistry"]
