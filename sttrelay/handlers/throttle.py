"""Per-client audio throttle with a keep-alive exemption."""

from __future__ import annotations

import logging

from sttrelay.errors import RateLimitError

from .limits import TimeFn, SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class AudioThrottle:
    """Admit at most `limit` real-audio frames per rolling window.

    Frames smaller than `keepalive_max_bytes` are keep-alive traffic: they are
    always admitted and never counted.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        keepalive_max_bytes: int,
        now_fn: TimeFn | None = None,
    ) -> None:
        self.keepalive_max_bytes = max(0, int(keepalive_max_bytes))
        self._limiter = SlidingWindowRateLimiter(limit=limit, window_seconds=window_seconds, now_fn=now_fn)
        self.dropped = 0

    def is_keepalive(self, frame: bytes) -> bool:
        return len(frame) < self.keepalive_max_bytes

    @property
    def counted(self) -> int:
        return self._limiter.in_window

    def admit(self, frame: bytes) -> bool:
        if self.is_keepalive(frame):
            return True
        try:
            self._limiter.consume()
        except RateLimitError as exc:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 50 == 0:
                logger.info(
                    "audio throttled: limit=%s window=%.0fs retry_in=%.2fs dropped=%s",
                    exc.limit,
                    exc.window_seconds,
                    exc.retry_in,
                    self.dropped,
                )
            return False
        return True


__all__ = ["AudioThrottle"]
