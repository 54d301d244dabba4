from __future__ import annotations

from sttrelay.client.reconnect import ReconnectPolicy


def test_backoff_doubles_and_caps() -> None:
    policy = ReconnectPolicy(base_delay_s=1.0, max_delay_s=30.0)
    assert [policy.delay_for(a) for a in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]
    assert policy.delay_for(20) == 30.0


def test_attempts_are_bounded() -> None:
    policy = ReconnectPolicy(max_attempts=5)
    assert all(policy.should_retry(a) for a in range(5))
    assert policy.should_retry(5) is False
