"""Upstream session lifecycle states."""

from __future__ import annotations

from enum import Enum


class UpstreamState(str, Enum):
    CONNECTING = "connecting"
    ESTABLISHED = "established"
    STREAMING = "streaming"
    CLOSED = "closed"


__all__ = ["UpstreamState"]
