from __future__ import annotations

import asyncio

import orjson
import numpy as np
import pytest
from websockets.exceptions import ConnectionClosedError

from sttrelay.client.pcm import float_to_pcm16
from sttrelay.client.capture import CaptureConfig
from sttrelay.client.reconnect import ReconnectPolicy
from sttrelay.client.transport import TranscriptionClient
from sttrelay.client.session import ConnectionState, TranscriptSession


class _FakeRelaySocket:
    def __init__(self, frames: list[dict], *, close_code: int | None = None, drop_audio: bool = False) -> None:
        self._frames = [orjson.dumps(f).decode() for f in frames]
        self._closed = asyncio.Event()
        self._drop_audio = drop_audio
        self.sent: list = []
        self.ops: list[tuple] = []
        self.close_code = close_code
        self.close_reason = ""
        self.close_args: tuple[int, str] | None = None

    async def send(self, data) -> None:
        if self._drop_audio and isinstance(data, bytes):
            raise ConnectionClosedError(None, None)
        self.sent.append(data)
        self.ops.append(("send", data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_args = (code, reason)
        self.close_code = code
        self.ops.append(("close", code))
        self._closed.set()

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for frame in self._frames:
            yield frame
        if self.close_code is None:
            await self._closed.wait()


async def _until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_streams_audio_and_applies_transcripts() -> None:
    relay = _FakeRelaySocket(
        [
            {"type": "session.created", "session_id": "s1"},
            {"type": "conversation.item.input_audio_transcription.delta", "delta": "hello"},
        ]
    )
    seen: dict = {}

    async def connect(url, *, additional_headers):
        seen["url"] = url
        seen["headers"] = additional_headers
        return relay

    updates: list[ConnectionState] = []
    client = TranscriptionClient(
        "ws://relay/ws",
        api_key="secret",
        connect_fn=connect,
        on_update=lambda session: updates.append(session.state),
    )
    await client.start()
    await _until(lambda: client.session.message_count == 1)

    client.send_audio(b"\x01\x00" * 1024)
    await _until(lambda: len(relay.sent) == 2)
    assert orjson.loads(relay.sent[0]) == {"type": "ping", "message": "identify_client"}
    assert relay.sent[1] == b"\x01\x00" * 1024
    assert seen == {"url": "ws://relay/ws", "headers": {"X-API-Key": "secret"}}

    await client.stop()
    assert relay.close_args == (1000, "Recording stopped")
    assert client.state is ConnectionState.DISCONNECTED
    assert client.session.messages[0].text == "hello"
    assert client.session.messages[0].is_partial is False
    assert ConnectionState.CONNECTING in updates


@pytest.mark.asyncio
async def test_stop_cancels_pending_reconnect() -> None:
    attempts = 0
    sleeping = asyncio.Event()
    never = asyncio.Event()

    async def connect(url, *, additional_headers):
        nonlocal attempts
        attempts += 1
        raise OSError("connection refused")

    async def sleep(_delay: float) -> None:
        sleeping.set()
        await never.wait()

    client = TranscriptionClient("ws://relay/ws", connect_fn=connect, sleep_fn=sleep)
    await client.start()
    await asyncio.wait_for(sleeping.wait(), timeout=2.0)
    assert client.state is ConnectionState.RECONNECTING

    await client.stop()
    assert attempts == 1
    assert client.state is ConnectionState.DISCONNECTED
    assert client.is_recording is False


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts() -> None:
    attempts = 0
    delays: list[float] = []

    async def connect(url, *, additional_headers):
        nonlocal attempts
        attempts += 1
        raise OSError("connection refused")

    async def sleep(delay: float) -> None:
        delays.append(delay)

    client = TranscriptionClient(
        "ws://relay/ws",
        policy=ReconnectPolicy(base_delay_s=1.0, max_delay_s=30.0, max_attempts=2),
        connect_fn=connect,
        sleep_fn=sleep,
    )
    await client.start()
    await client.wait_closed()

    assert attempts == 3
    assert delays == [1.0, 2.0]
    assert client.state is ConnectionState.ERROR
    assert client.is_recording is False
    await client.stop()


@pytest.mark.asyncio
async def test_unauthorized_close_is_not_retried() -> None:
    relay = _FakeRelaySocket(
        [{"type": "error", "error": {"code": "authentication_failed", "message": "nope"}}],
        close_code=4001,
    )
    attempts = 0

    async def connect(url, *, additional_headers):
        nonlocal attempts
        attempts += 1
        return relay

    client = TranscriptionClient("ws://relay/ws", connect_fn=connect, sleep_fn=lambda _d: asyncio.sleep(0))
    await client.start()
    await client.wait_closed()

    assert attempts == 1
    assert client.state is ConnectionState.ERROR
    assert client.session.last_error == "nope"


@pytest.mark.asyncio
async def test_silence_watchdog_segments_messages() -> None:
    relay = _FakeRelaySocket([{"type": "conversation.item.input_audio_transcription.delta", "delta": "quiet now"}])

    async def connect(url, *, additional_headers):
        return relay

    session = TranscriptSession(silence_timeout_s=0.05)
    client = TranscriptionClient("ws://relay/ws", session=session, connect_fn=connect, watchdog_tick_s=0.01)
    await client.start()
    await _until(lambda: session.message_count == 1 and session.current_message is None)

    assert session.messages[0].silence_segmented is True
    await client.stop()


@pytest.mark.asyncio
async def test_frame_lost_mid_send_is_resent_after_reconnect() -> None:
    broken = _FakeRelaySocket([], drop_audio=True)
    healthy = _FakeRelaySocket([])
    sockets = [broken, healthy]

    async def connect(url, *, additional_headers):
        return sockets.pop(0)

    client = TranscriptionClient("ws://relay/ws", connect_fn=connect, sleep_fn=lambda _d: asyncio.sleep(0))
    await client.start()
    await _until(lambda: len(broken.sent) == 1)

    speech = b"SPEECH" * 300
    client.send_audio(speech)
    await _until(lambda: len(healthy.sent) == 2)

    assert healthy.sent[1] == speech
    assert all(isinstance(data, str) for data in broken.sent)
    await client.stop()


@pytest.mark.asyncio
async def test_stop_discards_audio_queued_while_disconnected() -> None:
    relay = _FakeRelaySocket([])
    refuse = True
    never = asyncio.Event()

    async def connect(url, *, additional_headers):
        if refuse:
            raise OSError("connection refused")
        return relay

    async def sleep(_delay: float) -> None:
        await never.wait()

    client = TranscriptionClient("ws://relay/ws", connect_fn=connect, sleep_fn=sleep)
    await client.start()
    await _until(lambda: client.state is ConnectionState.RECONNECTING)
    client.send_audio(b"OLD-SESSION-AUDIO" * 100)
    await client.stop()

    refuse = False
    await client.start()
    await _until(lambda: len(relay.sent) == 1)
    client.send_audio(b"NEW-SESSION-AUDIO" * 100)
    await _until(lambda: len(relay.sent) == 2)

    audio = [frame for frame in relay.sent if isinstance(frame, bytes)]
    assert audio == [b"NEW-SESSION-AUDIO" * 100]
    await client.stop()


@pytest.mark.asyncio
async def test_stop_flushes_buffered_capture_before_closing() -> None:
    relay = _FakeRelaySocket([])

    async def connect(url, *, additional_headers):
        return relay

    client = TranscriptionClient(
        "ws://relay/ws",
        connect_fn=connect,
        capture_config=CaptureConfig(vad_enabled=False),
    )
    await client.start()
    await _until(lambda: len(relay.sent) == 1)

    frame = np.full(320, 0.1, dtype=np.float32)
    client.capture.process_frame(frame, now=0.0)
    assert len(relay.sent) == 1

    await client.stop()
    assert relay.ops[-2:] == [("send", float_to_pcm16(frame)), ("close", 1000)]
