"""Session lifetime and sweep configuration (env-resolved constants only)."""

from __future__ import annotations

ENV_STT_MAX_IDLE_TIME_S = "STT_MAX_IDLE_TIME_S"
ENV_STT_MAX_SESSION_TIME_S = "STT_MAX_SESSION_TIME_S"
ENV_STT_SWEEP_INTERVAL_S = "STT_SWEEP_INTERVAL_S"

DEFAULT_STT_MAX_IDLE_TIME_S = 300.0
DEFAULT_STT_MAX_SESSION_TIME_S = 1800.0
DEFAULT_STT_SWEEP_INTERVAL_S = 60.0

__all__ = [
    "DEFAULT_STT_MAX_IDLE_TIME_S",
    "DEFAULT_STT_MAX_SESSION_TIME_S",
    "DEFAULT_STT_SWEEP_INTERVAL_S",
    "ENV_STT_MAX_IDLE_TIME_S",
    "ENV_STT_MAX_SESSION_TIME_S",
    "ENV_STT_SWEEP_INTERVAL_S",
]
