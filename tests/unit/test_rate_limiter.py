from __future__ import annotations

import pytest

from sttrelay.errors import RateLimitError
from sttrelay.handlers.throttle import AudioThrottle
from sttrelay.handlers.limits import SlidingWindowRateLimiter


def test_rate_limiter_allows_within_limit() -> None:
    t = 0.0

    def now() -> float:
        return t

    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=10, now_fn=now)
    limiter.consume()
    limiter.consume()


def test_rate_limiter_rejects_when_saturated() -> None:
    t = 0.0

    def now() -> float:
        return t

    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=10, now_fn=now)
    limiter.consume()
    limiter.consume()

    with pytest.raises(RateLimitError) as exc:
        limiter.consume()
    assert exc.value.limit == 2
    assert exc.value.window_seconds == 10


def test_rate_limiter_window_rolls_over() -> None:
    clock = {"t": 0.0}
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, now_fn=lambda: clock["t"])
    limiter.consume()
    clock["t"] = 59.0
    with pytest.raises(RateLimitError):
        limiter.consume()
    clock["t"] = 60.5
    limiter.consume()


def test_audio_throttle_exempts_keepalive_frames() -> None:
    throttle = AudioThrottle(limit=2, window_seconds=60, keepalive_max_bytes=1024, now_fn=lambda: 0.0)
    large = b"\x01" * 2048
    small = b"\x00" * 320

    assert throttle.admit(large) is True
    assert throttle.admit(large) is True
    assert [throttle.admit(small) for _ in range(5)] == [True] * 5
    assert throttle.counted == 2
    assert throttle.admit(large) is False
    assert throttle.dropped == 1


def test_audio_throttle_threshold_is_strict() -> None:
    throttle = AudioThrottle(limit=1, window_seconds=60, keepalive_max_bytes=1024, now_fn=lambda: 0.0)
    assert throttle.is_keepalive(b"\x00" * 1023) is True
    assert throttle.is_keepalive(b"\x00" * 1024) is False


def test_audio_throttle_disabled_when_limit_zero() -> None:
    throttle = AudioThrottle(limit=0, window_seconds=60, keepalive_max_bytes=1024, now_fn=lambda: 0.0)
    assert all(throttle.admit(b"\x01" * 4096) for _ in range(500))
