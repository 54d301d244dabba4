"""Outbound relay frames built from upstream events."""

from __future__ import annotations

import time
from typing import Any

from sttrelay.config.websocket import (
    WS_EVENT_ERROR,
    WS_CONTROL_PONG,
    WS_EVENT_CUSTOM_FINAL,
    WS_EVENT_SESSION_ENDED,
    WS_EVENT_CUSTOM_PARTIAL,
    WS_EVENT_SESSION_CREATED,
    WS_EVENT_TRANSCRIPT_DELTA,
    WS_EVENT_CLIENT_IDENTIFIED,
    WS_EVENT_TRANSCRIPT_COMPLETED,
)

from .types import TranscriptEvent


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def session_created_frame(session_id: str, provider: str) -> dict[str, Any]:
    return {
        "type": WS_EVENT_SESSION_CREATED,
        "session_id": session_id,
        "provider": provider,
        "timestamp": _timestamp_ms(),
    }


def client_identified_frame(client_id: str, provider: str) -> dict[str, Any]:
    return {
        "type": WS_EVENT_CLIENT_IDENTIFIED,
        "clientId": client_id,
        "provider": provider,
        "timestamp": _timestamp_ms(),
    }


def pong_frame() -> dict[str, Any]:
    return {"type": WS_CONTROL_PONG, "timestamp": _timestamp_ms()}


def transcript_frames(event: TranscriptEvent) -> list[dict[str, Any]]:
    """Standard realtime event first, then the provider-neutral duplicate."""
    timestamp = _timestamp_ms()
    if event.kind == "partial":
        return [
            {"type": WS_EVENT_TRANSCRIPT_DELTA, "delta": event.text},
            {"type": WS_EVENT_CUSTOM_PARTIAL, "text": event.text, "timestamp": timestamp},
        ]
    return [
        {"type": WS_EVENT_TRANSCRIPT_COMPLETED, "transcript": event.text},
        {"type": WS_EVENT_CUSTOM_FINAL, "text": event.text, "timestamp": timestamp},
    ]


def session_ended_frame(audio_duration_s: float | None) -> dict[str, Any]:
    return {"type": WS_EVENT_SESSION_ENDED, "duration": audio_duration_s, "timestamp": _timestamp_ms()}


def error_frame(code: str, message: str) -> dict[str, Any]:
    return {"type": WS_EVENT_ERROR, "error": {"code": code, "message": message}}


__all__ = [
    "client_identified_frame",
    "error_frame",
    "pong_frame",
    "session_created_frame",
    "session_ended_frame",
    "transcript_frames",
]
