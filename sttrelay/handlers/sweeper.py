"""Periodic idle / max-session eviction of relay clients."""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib

from sttrelay.config.websocket import (
    WS_CLOSE_IDLE_CODE,
    WS_CLOSE_IDLE_REASON,
    WS_CLOSE_MAX_DURATION_CODE,
    WS_CLOSE_MAX_DURATION_REASON,
)

from .limits import TimeFn
from .connections import ClientRegistry

logger = logging.getLogger(__name__)


class ClientSweeper:
    def __init__(
        self,
        clients: ClientRegistry,
        *,
        max_idle_s: float,
        max_session_s: float,
        interval_s: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        self._clients = clients
        self._max_idle_s = float(max_idle_s)
        self._max_session_s = float(max_session_s)
        self._interval_s = float(interval_s)
        self._now = now_fn or time.monotonic
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    async def sweep_once(self, now: float | None = None) -> list[str]:
        """Evict every client past its idle or session limit. Returns the evicted ids."""
        now = self._now() if now is None else now
        evicted: list[str] = []
        for conn in self._clients.snapshot():
            if conn.activity.age(now) > self._max_session_s:
                code, reason = WS_CLOSE_MAX_DURATION_CODE, WS_CLOSE_MAX_DURATION_REASON
            elif conn.activity.idle_for(now) > self._max_idle_s:
                code, reason = WS_CLOSE_IDLE_CODE, WS_CLOSE_IDLE_REASON
            else:
                continue
            if await self._clients.evict(conn.id, code=code, reason=reason):
                evicted.append(conn.id)
        if evicted:
            logger.info("sweep: evicted %s client(s)", len(evicted))
        return evicted

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._stop_event.clear()
            self._task = asyncio.create_task(self._loop())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(BaseException):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._interval_s)
                if self._stop_event.is_set():
                    break
                try:
                    await self.sweep_once()
                except Exception:
                    logger.exception("sweep failed")
        except asyncio.CancelledError:
            return


__all__ = ["ClientSweeper"]
