"""Runtime settings (dataclasses only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AuthSettings:
    api_key: str


@dataclass(frozen=True, slots=True)
class LimitsSettings:
    max_concurrent_connections: int
    audio_throttle_limit: int
    audio_throttle_window_s: float
    keepalive_max_bytes: int


@dataclass(frozen=True, slots=True)
class LifecycleSettings:
    max_idle_s: float
    max_session_s: float
    sweep_interval_s: float


@dataclass(frozen=True, slots=True)
class UpstreamSettings:
    url: str
    api_key: str
    sample_rate: int
    encoding: str
    connect_timeout_s: float
    min_confidence: float


@dataclass(frozen=True, slots=True)
class AppSettings:
    auth: AuthSettings
    limits: LimitsSettings
    lifecycle: LifecycleSettings
    upstream: UpstreamSettings


__all__ = [
    "AppSettings",
    "AuthSettings",
    "LifecycleSettings",
    "LimitsSettings",
    "UpstreamSettings",
]
