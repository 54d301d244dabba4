"""Environment parsing for runtime settings.

Names and defaults live in `sttrelay/config/*`; this module resolves them
against the environment and returns structured dataclasses.
"""

from __future__ import annotations

import os

from sttrelay.config.secrets import get_relay_api_key, get_assemblyai_api_key
from sttrelay.state.settings import (
    AppSettings,
    AuthSettings,
    LimitsSettings,
    UpstreamSettings,
    LifecycleSettings,
)
from sttrelay.config.lifecycle import (
    ENV_STT_MAX_IDLE_TIME_S,
    ENV_STT_SWEEP_INTERVAL_S,
    ENV_STT_MAX_SESSION_TIME_S,
    DEFAULT_STT_MAX_IDLE_TIME_S,
    DEFAULT_STT_SWEEP_INTERVAL_S,
    DEFAULT_STT_MAX_SESSION_TIME_S,
)
from sttrelay.config.limits import (
    ENV_STT_KEEPALIVE_MAX_BYTES,
    ENV_STT_AUDIO_THROTTLE_LIMIT,
    ENV_MAX_CONCURRENT_CONNECTIONS,
    ENV_STT_AUDIO_THROTTLE_WINDOW_S,
    DEFAULT_STT_KEEPALIVE_MAX_BYTES,
    DEFAULT_STT_AUDIO_THROTTLE_LIMIT,
    DEFAULT_MAX_CONCURRENT_CONNECTIONS,
    DEFAULT_STT_AUDIO_THROTTLE_WINDOW_S,
)
from sttrelay.config.upstream import (
    ENV_STT_ENCODING,
    ENV_STT_SAMPLE_RATE,
    DEFAULT_STT_ENCODING,
    ENV_STT_MIN_CONFIDENCE,
    DEFAULT_STT_SAMPLE_RATE,
    DEFAULT_STT_MIN_CONFIDENCE,
    ENV_ASSEMBLYAI_STREAMING_URL,
    DEFAULT_ASSEMBLYAI_STREAMING_URL,
    ENV_STT_UPSTREAM_CONNECT_TIMEOUT_S,
    DEFAULT_STT_UPSTREAM_CONNECT_TIMEOUT_S,
)


def _str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _positive_float_env(name: str, default: float) -> float:
    value = _float_env(name, default)
    return value if value > 0 else default


def _load_auth_settings() -> AuthSettings:
    return AuthSettings(api_key=get_relay_api_key())


def _load_limits_settings() -> LimitsSettings:
    max_connections = max(1, _int_env(ENV_MAX_CONCURRENT_CONNECTIONS, DEFAULT_MAX_CONCURRENT_CONNECTIONS))
    return LimitsSettings(
        max_concurrent_connections=max_connections,
        audio_throttle_limit=_int_env(ENV_STT_AUDIO_THROTTLE_LIMIT, DEFAULT_STT_AUDIO_THROTTLE_LIMIT),
        audio_throttle_window_s=_positive_float_env(
            ENV_STT_AUDIO_THROTTLE_WINDOW_S, DEFAULT_STT_AUDIO_THROTTLE_WINDOW_S
        ),
        keepalive_max_bytes=max(0, _int_env(ENV_STT_KEEPALIVE_MAX_BYTES, DEFAULT_STT_KEEPALIVE_MAX_BYTES)),
    )


def _load_lifecycle_settings() -> LifecycleSettings:
    return LifecycleSettings(
        max_idle_s=_positive_float_env(ENV_STT_MAX_IDLE_TIME_S, DEFAULT_STT_MAX_IDLE_TIME_S),
        max_session_s=_positive_float_env(ENV_STT_MAX_SESSION_TIME_S, DEFAULT_STT_MAX_SESSION_TIME_S),
        sweep_interval_s=_positive_float_env(ENV_STT_SWEEP_INTERVAL_S, DEFAULT_STT_SWEEP_INTERVAL_S),
    )


def _load_upstream_settings() -> UpstreamSettings:
    min_confidence = _float_env(ENV_STT_MIN_CONFIDENCE, DEFAULT_STT_MIN_CONFIDENCE)
    return UpstreamSettings(
        url=_str_env(ENV_ASSEMBLYAI_STREAMING_URL, DEFAULT_ASSEMBLYAI_STREAMING_URL),
        api_key=get_assemblyai_api_key(),
        sample_rate=max(1, _int_env(ENV_STT_SAMPLE_RATE, DEFAULT_STT_SAMPLE_RATE)),
        encoding=_str_env(ENV_STT_ENCODING, DEFAULT_STT_ENCODING),
        connect_timeout_s=_positive_float_env(
            ENV_STT_UPSTREAM_CONNECT_TIMEOUT_S, DEFAULT_STT_UPSTREAM_CONNECT_TIMEOUT_S
        ),
        min_confidence=min(1.0, max(0.0, min_confidence)),
    )


def load_settings() -> AppSettings:
    return AppSettings(
        auth=_load_auth_settings(),
        limits=_load_limits_settings(),
        lifecycle=_load_lifecycle_settings(),
        upstream=_load_upstream_settings(),
    )


__all__ = ["load_settings"]
