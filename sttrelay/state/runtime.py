"""Typed runtime state objects for dependency wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from sttrelay.state.settings import AppSettings
    from sttrelay.handlers.sweeper import ClientSweeper
    from sttrelay.upstream.bridge import UpstreamBridge
    from sttrelay.upstream.filters import TranscriptFilter
    from sttrelay.handlers.connections import ClientRegistry


@dataclass(slots=True)
class RuntimeDeps:
    clients: ClientRegistry
    upstream_bridge: UpstreamBridge
    transcript_filter: TranscriptFilter
    sweeper: ClientSweeper
    settings: AppSettings

    async def shutdown(self) -> None:
        try:
            await self.sweeper.stop()
        except Exception:
            logger.exception("sweeper shutdown failed")
        try:
            await self.clients.close_all()
        except Exception:
            logger.exception("client shutdown failed")


__all__ = ["RuntimeDeps"]
