"""Per-client relay state: the connection record and its activity clock."""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any
from dataclasses import field, dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActivityRecord:
    client_id: str
    session_start: float
    last_activity: float

    def touch(self, now: float) -> None:
        self.last_activity = now

    def idle_for(self, now: float) -> float:
        return now - self.last_activity

    def age(self, now: float) -> float:
        return now - self.session_start


@dataclass(slots=True)
class ClientConnection:
    """One relay client: its socket, its upstream session and its tasks.

    `close()` is idempotent; every teardown path (socket close, upstream
    failure, sweep eviction, shutdown) goes through it.
    """

    id: str
    socket: Any
    upstream: Any
    created_at: float
    activity: ActivityRecord
    tasks: list[asyncio.Task] = field(default_factory=list)
    closed: asyncio.Event = field(default_factory=asyncio.Event)
    close_code: int | None = None
    close_reason: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.closed.is_set()

    async def close(self, code: int, reason: str) -> bool:
        """Close both sockets and cancel the client's tasks. Returns False if already closed."""
        if self.closed.is_set():
            return False
        self.closed.set()
        self.close_code = code
        self.close_reason = reason

        current = asyncio.current_task()
        for task in self.tasks:
            if task is not current and not task.done():
                task.cancel()

        if self.upstream is not None:
            with contextlib.suppress(Exception):
                await self.upstream.close()
        with contextlib.suppress(Exception):
            await self.socket.close(code=code, reason=reason)
        logger.info("client %s closed code=%s reason=%s", self.id, code, reason)
        return True


__all__ = ["ActivityRecord", "ClientConnection"]
