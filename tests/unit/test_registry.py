from __future__ import annotations

import asyncio

import pytest

from sttrelay.handlers.sweeper import ClientSweeper
from sttrelay.handlers.connections import ClientRegistry
from sttrelay.state.connection import ActivityRecord, ClientConnection
from sttrelay.config.websocket import WS_CLOSE_IDLE_CODE, WS_CLOSE_MAX_DURATION_CODE


class _FakeWebSocket:
    def __init__(self) -> None:
        self.closes: list[tuple[int, str]] = []

    async def close(self, *, code: int = 1000, reason: str | None = None) -> None:
        self.closes.append((code, reason or ""))


class _FakeUpstream:
    def __init__(self) -> None:
        self.close_calls = 0

    async def close(self) -> None:
        self.close_calls += 1


def _client(client_id: str, *, started: float = 0.0, last: float | None = None) -> ClientConnection:
    return ClientConnection(
        id=client_id,
        socket=_FakeWebSocket(),
        upstream=_FakeUpstream(),
        created_at=started,
        activity=ActivityRecord(
            client_id=client_id,
            session_start=started,
            last_activity=started if last is None else last,
        ),
    )


@pytest.mark.asyncio
async def test_evict_is_idempotent() -> None:
    registry = ClientRegistry(max_connections=4)
    conn = _client("a")
    assert await registry.register(conn) is True

    assert await registry.evict("a", code=1000, reason="bye") is True
    assert await registry.evict("a", code=1000, reason="bye") is False
    assert await conn.close(1000, "again") is False

    assert conn.socket.closes == [(1000, "bye")]
    assert conn.upstream.close_calls == 1
    assert registry.get("a") is None
    assert registry.get_connection_count() == 0


@pytest.mark.asyncio
async def test_evict_unknown_client_is_noop() -> None:
    registry = ClientRegistry(max_connections=1)
    assert await registry.evict("missing", code=1000, reason="bye") is False


@pytest.mark.asyncio
async def test_register_refuses_over_capacity() -> None:
    registry = ClientRegistry(max_connections=1)
    assert await registry.register(_client("a")) is True
    assert await registry.register(_client("b")) is False
    assert registry.get_connection_count() == 1


@pytest.mark.asyncio
async def test_close_cancels_client_tasks() -> None:
    conn = _client("a")
    task = asyncio.create_task(asyncio.sleep(3600))
    conn.tasks.append(task)

    await conn.close(4000, "idle timeout")
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_sweep_evicts_idle_then_expired_sessions() -> None:
    registry = ClientRegistry(max_connections=4)
    idle = _client("idle", started=0.0, last=0.0)
    busy = _client("busy", started=0.0, last=250.0)
    await registry.register(idle)
    await registry.register(busy)
    sweeper = ClientSweeper(registry, max_idle_s=300, max_session_s=1800, interval_s=60)

    assert await sweeper.sweep_once(now=299.0) == []
    assert await sweeper.sweep_once(now=301.0) == ["idle"]
    assert idle.socket.closes == [(WS_CLOSE_IDLE_CODE, "idle timeout")]

    busy.activity.touch(1790.0)
    assert await sweeper.sweep_once(now=1801.0) == ["busy"]
    assert busy.socket.closes[0][0] == WS_CLOSE_MAX_DURATION_CODE
    assert registry.get_connection_count() == 0


@pytest.mark.asyncio
async def test_sweep_racing_socket_close_closes_once() -> None:
    registry = ClientRegistry(max_connections=4)
    conn = _client("a", started=0.0, last=0.0)
    await registry.register(conn)
    sweeper = ClientSweeper(registry, max_idle_s=10, max_session_s=100, interval_s=60)

    results = await asyncio.gather(
        registry.evict("a", code=1000, reason="client disconnected"),
        sweeper.sweep_once(now=50.0),
    )

    assert len(conn.socket.closes) == 1
    assert conn.upstream.close_calls == 1
    assert results[0] is True or results[1] == ["a"]


@pytest.mark.asyncio
async def test_sweeper_start_stop() -> None:
    registry = ClientRegistry(max_connections=1)
    sweeper = ClientSweeper(registry, max_idle_s=300, max_session_s=1800, interval_s=0.01)
    sweeper.start()
    await asyncio.sleep(0.05)
    await sweeper.stop()
    await sweeper.stop()
