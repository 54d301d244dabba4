"""Client session state machine defaults."""

from __future__ import annotations

SESSION_SILENCE_TIMEOUT_S = 10.0
SESSION_WATCHDOG_TICK_S = 0.5

RECONNECT_BASE_DELAY_S = 1.0
RECONNECT_MAX_DELAY_S = 30.0
RECONNECT_MAX_ATTEMPTS = 5

CLIENT_CLOSE_STOP_REASON = "Recording stopped"

__all__ = [
    "CLIENT_CLOSE_STOP_REASON",
    "RECONNECT_BASE_DELAY_S",
    "RECONNECT_MAX_ATTEMPTS",
    "RECONNECT_MAX_DELAY_S",
    "SESSION_SILENCE_TIMEOUT_S",
    "SESSION_WATCHDOG_TICK_S",
]
