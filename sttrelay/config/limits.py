"""Admission control and audio throttle configuration (env-resolved constants only)."""

from __future__ import annotations

ENV_MAX_CONCURRENT_CONNECTIONS = "MAX_CONCURRENT_CONNECTIONS"
ENV_STT_AUDIO_THROTTLE_LIMIT = "STT_AUDIO_THROTTLE_LIMIT"
ENV_STT_AUDIO_THROTTLE_WINDOW_S = "STT_AUDIO_THROTTLE_WINDOW_S"
ENV_STT_KEEPALIVE_MAX_BYTES = "STT_KEEPALIVE_MAX_BYTES"

DEFAULT_MAX_CONCURRENT_CONNECTIONS = 100

# Real-audio frames per rolling window. Keep-alive frames never count.
DEFAULT_STT_AUDIO_THROTTLE_LIMIT = 120
DEFAULT_STT_AUDIO_THROTTLE_WINDOW_S = 60.0

# Binary frames strictly smaller than this are keep-alive traffic.
DEFAULT_STT_KEEPALIVE_MAX_BYTES = 1024

__all__ = [
    "DEFAULT_MAX_CONCURRENT_CONNECTIONS",
    "DEFAULT_STT_AUDIO_THROTTLE_LIMIT",
    "DEFAULT_STT_AUDIO_THROTTLE_WINDOW_S",
    "DEFAULT_STT_KEEPALIVE_MAX_BYTES",
    "ENV_MAX_CONCURRENT_CONNECTIONS",
    "ENV_STT_AUDIO_THROTTLE_LIMIT",
    "ENV_STT_AUDIO_THROTTLE_WINDOW_S",
    "ENV_STT_KEEPALIVE_MAX_BYTES",
]
