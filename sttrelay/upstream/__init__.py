"""Upstream streaming STT sessions (one per relay client)."""

from .bridge import UpstreamBridge
from .filters import TranscriptFilter
from .state import UpstreamState
from .types import UpstreamError, TranscriptEvent, UpstreamSession, UpstreamTerminated

__all__ = [
    "TranscriptEvent",
    "TranscriptFilter",
    "UpstreamBridge",
    "UpstreamError",
    "UpstreamSession",
    "UpstreamState",
    "UpstreamTerminated",
]
