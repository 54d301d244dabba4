"""Exponential reconnection backoff."""

from __future__ import annotations

from dataclasses import dataclass

from sttrelay.config.session import RECONNECT_MAX_DELAY_S, RECONNECT_BASE_DELAY_S, RECONNECT_MAX_ATTEMPTS


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    base_delay_s: float = RECONNECT_BASE_DELAY_S
    max_delay_s: float = RECONNECT_MAX_DELAY_S
    max_attempts: int = RECONNECT_MAX_ATTEMPTS

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay_s * (2 ** max(0, attempt)), self.max_delay_s)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts


__all__ = ["ReconnectPolicy"]
