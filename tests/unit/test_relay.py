from __future__ import annotations

import asyncio

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from sttrelay.server import create_app
from sttrelay.errors import UpstreamConnectError
from sttrelay.upstream.bridge import UpstreamBridge
from sttrelay.runtime.dependencies import build_runtime_deps
from sttrelay.upstream.state import UpstreamState
from sttrelay.upstream.types import TranscriptEvent, UpstreamTerminated
from sttrelay.state.settings import (
    AppSettings,
    AuthSettings,
    LimitsSettings,
    UpstreamSettings,
    LifecycleSettings,
)


class _FakeUpstream:
    """Scripted upstream: replays `script` once the first audio frame arrives."""

    def __init__(self, script=(), *, fail: str | None = None, hang: bool = False) -> None:
        self.session_id: str | None = None
        self.script = list(script)
        self.fail = fail
        self.hang = hang
        self.audio: list[bytes] = []
        self.closed = False
        self._state = UpstreamState.CONNECTING
        self._first_audio: asyncio.Event | None = None

    @property
    def state(self) -> UpstreamState:
        return self._state

    async def connect(self) -> None:
        if self.hang:
            await asyncio.sleep(3600)
        if self.fail:
            raise UpstreamConnectError(reason=self.fail)
        self._first_audio = asyncio.Event()
        self.session_id = "fake-session"
        self._state = UpstreamState.ESTABLISHED

    async def send_audio(self, frame: bytes) -> None:
        self.audio.append(frame)
        self._state = UpstreamState.STREAMING
        self._first_audio.set()

    async def events(self):
        await self._first_audio.wait()
        for event in self.script:
            yield event
        await asyncio.Event().wait()

    async def close(self) -> None:
        self.closed = True
        self._state = UpstreamState.CLOSED


def _settings(*, api_key: str = "", max_connections: int = 4, throttle: int = 120, timeout: float = 1.0) -> AppSettings:
    return AppSettings(
        auth=AuthSettings(api_key=api_key),
        limits=LimitsSettings(
            max_concurrent_connections=max_connections,
            audio_throttle_limit=throttle,
            audio_throttle_window_s=60.0,
            keepalive_max_bytes=1024,
        ),
        lifecycle=LifecycleSettings(max_idle_s=300.0, max_session_s=1800.0, sweep_interval_s=60.0),
        upstream=UpstreamSettings(
            url="wss://example.invalid/v3/ws",
            api_key="unused",
            sample_rate=16000,
            encoding="pcm_s16le",
            connect_timeout_s=timeout,
            min_confidence=0.7,
        ),
    )


def _client(settings: AppSettings, *upstreams: _FakeUpstream) -> TestClient:
    pending = list(upstreams)

    def factory(_settings: UpstreamSettings) -> _FakeUpstream:
        return pending.pop(0) if pending else _FakeUpstream()

    async def build():
        bridge = UpstreamBridge(settings.upstream, session_factory=factory)
        return await build_runtime_deps(settings, upstream_bridge=bridge)

    return TestClient(create_app(build_deps=build))


AUDIO = b"\x01\x00" * 1600


def test_health_endpoints() -> None:
    with _client(_settings()) as client:
        for path in ("/", "/health", "/healthz"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json() == {"status": "ok"}


def test_session_created_then_control_messages() -> None:
    with _client(_settings()) as client, client.websocket_connect("/ws") as ws:
        created = ws.receive_json()
        assert created["type"] == "session.created"
        assert created["session_id"] == "fake-session"
        assert created["provider"] == "assemblyai"

        ws.send_json({"type": "ping", "message": "identify_client"})
        identified = ws.receive_json()
        assert identified["type"] == "client_identified"
        assert identified["clientId"]

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

        ws.send_json({"type": "session.update"})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["error"]["code"] == "invalid_message"


def test_transcripts_are_filtered_and_duplicated_in_order() -> None:
    upstream = _FakeUpstream(
        [
            TranscriptEvent(kind="partial", text="um"),
            TranscriptEvent(kind="partial", text="hello there", confidence=0.9),
            TranscriptEvent(kind="final", text="hello the", confidence=0.3),
            TranscriptEvent(kind="final", text="Hello there.", confidence=0.95),
        ]
    )
    with _client(_settings(), upstream) as client, client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(AUDIO)

        frames = [ws.receive_json() for _ in range(4)]
        assert [f["type"] for f in frames] == [
            "conversation.item.input_audio_transcription.delta",
            "custom_transcription_partial",
            "conversation.item.input_audio_transcription.completed",
            "custom_transcription_final",
        ]
        assert frames[0]["delta"] == "hello there"
        assert frames[1]["text"] == "hello there"
        assert frames[2]["transcript"] == "Hello there."
        assert frames[3]["text"] == "Hello there."

    assert upstream.audio == [AUDIO]
    assert upstream.closed is True


def test_audio_throttle_exempts_keepalives() -> None:
    upstream = _FakeUpstream()
    keep_alive = b"\x00" * 320
    with _client(_settings(throttle=2), upstream) as client, client.websocket_connect("/ws") as ws:
        ws.receive_json()
        for frame in (AUDIO, AUDIO, AUDIO, keep_alive, keep_alive):
            ws.send_bytes(frame)
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

    assert upstream.audio == [AUDIO, AUDIO, keep_alive, keep_alive]


def test_upstream_termination_closes_client() -> None:
    upstream = _FakeUpstream([UpstreamTerminated(audio_duration_s=3.0)])
    with _client(_settings(), upstream) as client, client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(AUDIO)
        ended = ws.receive_json()
        assert ended["type"] == "session_ended"
        assert ended["duration"] == 3.0
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
        assert exc.value.code == 1011


@pytest.mark.parametrize(
    "upstream",
    [_FakeUpstream(fail="invalid credentials"), _FakeUpstream(hang=True)],
    ids=["rejected", "timeout"],
)
def test_upstream_connect_failure_closes_with_1011(upstream: _FakeUpstream) -> None:
    with _client(_settings(timeout=0.05), upstream) as client, client.websocket_connect("/ws") as ws:
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["error"]["code"] == "upstream_error"
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
        assert exc.value.code == 1011
        assert exc.value.reason == "Failed to connect to transcription service"
    assert upstream.closed is True


def test_missing_api_key_is_rejected() -> None:
    with _client(_settings(api_key="secret")) as client:
        with client.websocket_connect("/ws") as ws:
            error = ws.receive_json()
            assert error["error"]["code"] == "authentication_failed"
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
            assert exc.value.code == 4001

        with client.websocket_connect("/ws?api_key=secret") as ws:
            assert ws.receive_json()["type"] == "session.created"

        with client.websocket_connect("/ws", headers={"X-API-Key": "secret"}) as ws:
            assert ws.receive_json()["type"] == "session.created"


def test_capacity_limit_rejects_extra_clients() -> None:
    with _client(_settings(max_connections=1)) as client, client.websocket_connect("/ws") as first:
        assert first.receive_json()["type"] == "session.created"
        with client.websocket_connect("/ws") as second:
            error = second.receive_json()
            assert error["error"]["code"] == "server_at_capacity"
            with pytest.raises(WebSocketDisconnect) as exc:
                second.receive_json()
            assert exc.value.code == 4002
