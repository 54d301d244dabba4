"""Upstream session protocol and the events it yields."""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import AsyncIterator
from typing import Literal, Protocol, TypeAlias

from .state import UpstreamState


@dataclass(frozen=True, slots=True)
class TranscriptEvent:
    kind: Literal["partial", "final"]
    text: str
    confidence: float | None = None


@dataclass(frozen=True, slots=True)
class UpstreamError:
    message: str


@dataclass(frozen=True, slots=True)
class UpstreamTerminated:
    audio_duration_s: float | None = None


UpstreamEvent: TypeAlias = TranscriptEvent | UpstreamError | UpstreamTerminated


class UpstreamSession(Protocol):
    session_id: str | None

    @property
    def state(self) -> UpstreamState: ...

    async def connect(self) -> None: ...

    async def send_audio(self, frame: bytes) -> None: ...

    def events(self) -> AsyncIterator[UpstreamEvent]: ...

    async def close(self) -> None: ...


__all__ = [
    "TranscriptEvent",
    "UpstreamError",
    "UpstreamEvent",
    "UpstreamSession",
    "UpstreamTerminated",
]
