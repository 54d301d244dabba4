"""Factory for per-client upstream sessions."""

from __future__ import annotations

from collections.abc import Callable

from sttrelay.state.settings import UpstreamSettings
from sttrelay.config.upstream import UPSTREAM_PROVIDER_NAME

from .types import UpstreamSession
from .assemblyai import AssemblyAISession

SessionFactory = Callable[[UpstreamSettings], UpstreamSession]


class UpstreamBridge:
    def __init__(
        self,
        settings: UpstreamSettings,
        *,
        session_factory: SessionFactory | None = None,
        provider: str = UPSTREAM_PROVIDER_NAME,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self._session_factory: SessionFactory = session_factory or AssemblyAISession

    def new_session(self) -> UpstreamSession:
        return self._session_factory(self.settings)


__all__ = ["SessionFactory", "UpstreamBridge"]
