"""VAD frame classes."""

from __future__ import annotations

from enum import Enum


class FrameKind(str, Enum):
    SPEECH = "speech"
    NOISE = "noise"
    SILENCE = "silence"


__all__ = ["FrameKind"]
