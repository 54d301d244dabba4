"""Runtime dependency construction (registry, upstream bridge, filter, sweeper)."""

from __future__ import annotations

import logging

from sttrelay.state import RuntimeDeps
from sttrelay.state.settings import AppSettings
from sttrelay.upstream.bridge import UpstreamBridge
from sttrelay.handlers.sweeper import ClientSweeper
from sttrelay.upstream.filters import TranscriptFilter
from sttrelay.handlers.connections import ClientRegistry

from .settings import load_settings

logger = logging.getLogger(__name__)


async def build_runtime_deps(
    settings: AppSettings | None = None,
    *,
    upstream_bridge: UpstreamBridge | None = None,
) -> RuntimeDeps:
    settings = settings or load_settings()

    if upstream_bridge is None and not settings.upstream.api_key:
        logger.warning("runtime: ASSEMBLYAI_API_KEY is not set; upstream sessions will be rejected")

    clients = ClientRegistry(max_connections=settings.limits.max_concurrent_connections)
    sweeper = ClientSweeper(
        clients,
        max_idle_s=settings.lifecycle.max_idle_s,
        max_session_s=settings.lifecycle.max_session_s,
        interval_s=settings.lifecycle.sweep_interval_s,
    )
    sweeper.start()

    return RuntimeDeps(
        clients=clients,
        upstream_bridge=upstream_bridge or UpstreamBridge(settings.upstream),
        transcript_filter=TranscriptFilter(min_confidence=settings.upstream.min_confidence),
        sweeper=sweeper,
        settings=settings,
    )


__all__ = ["RuntimeDeps", "build_runtime_deps"]
