"""Shared error types for the transcription relay and client."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitError(Exception):
    """Raised when a sliding-window rate limiter is saturated."""

    retry_in: float
    limit: int
    window_seconds: float


@dataclass(frozen=True, slots=True)
class UpstreamConnectError(Exception):
    """Raised when the upstream STT session cannot be established."""

    reason: str


@dataclass(frozen=True, slots=True)
class CaptureError(Exception):
    """Raised (or reported) when the audio input device fails."""

    reason: str


__all__ = ["CaptureError", "RateLimitError", "UpstreamConnectError"]
