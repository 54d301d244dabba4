"""AssemblyAI v3 streaming session over `websockets`."""

from __future__ import annotations

import logging
import contextlib
from typing import Any
from urllib.parse import urlencode
from collections.abc import Callable, AsyncIterator

import orjson
import websockets

from sttrelay.errors import UpstreamConnectError
from sttrelay.state.settings import UpstreamSettings

from .state import UpstreamState
from .types import (
    UpstreamError,
    UpstreamEvent,
    TranscriptEvent,
    UpstreamTerminated,
)

logger = logging.getLogger(__name__)

ConnectFn = Callable[..., Any]


def _mean_confidence(words: Any) -> float | None:
    if not isinstance(words, list):
        return None
    scores = [
        float(w["confidence"])
        for w in words
        if isinstance(w, dict) and isinstance(w.get("confidence"), (int, float))
    ]
    if not scores:
        return None
    return sum(scores) / len(scores)


def parse_provider_message(message: dict[str, Any], *, format_turns: bool = True) -> UpstreamEvent | None:
    """Map one provider JSON message to an upstream event (None if irrelevant)."""
    msg_type = message.get("type")
    if msg_type == "Turn":
        text = (message.get("transcript") or "").strip()
        if not text:
            return None
        confidence = _mean_confidence(message.get("words"))
        if message.get("end_of_turn"):
            # With formatting on, each turn ends twice; only the formatted one is final.
            if format_turns and not message.get("turn_is_formatted"):
                return None
            return TranscriptEvent(kind="final", text=text, confidence=confidence)
        return TranscriptEvent(kind="partial", text=text, confidence=confidence)
    if msg_type == "Termination":
        duration = message.get("audio_duration_seconds")
        return UpstreamTerminated(audio_duration_s=float(duration) if isinstance(duration, (int, float)) else None)
    if msg_type == "Error" or "error" in message:
        return UpstreamError(message=str(message.get("error") or message.get("message") or "upstream error"))
    return None


class AssemblyAISession:
    def __init__(
        self,
        settings: UpstreamSettings,
        *,
        format_turns: bool = True,
        connect_fn: ConnectFn | None = None,
    ) -> None:
        self._settings = settings
        self._format_turns = format_turns
        self._connect_fn = connect_fn or websockets.connect
        self._ws: Any = None
        self._state = UpstreamState.CONNECTING
        self.session_id: str | None = None

    @property
    def state(self) -> UpstreamState:
        return self._state

    def build_url(self) -> str:
        query = urlencode(
            {
                "sample_rate": self._settings.sample_rate,
                "encoding": self._settings.encoding,
                "format_turns": "true" if self._format_turns else "false",
            }
        )
        return f"{self._settings.url}?{query}"

    async def connect(self) -> None:
        """Open the provider socket and wait for its `Begin` message."""
        if not self._settings.api_key:
            self._state = UpstreamState.CLOSED
            raise UpstreamConnectError(reason="ASSEMBLYAI_API_KEY is not set")
        try:
            self._ws = await self._connect_fn(
                self.build_url(),
                additional_headers={"Authorization": self._settings.api_key},
            )
            while True:
                message = self._decode(await self._ws.recv())
                if message is None:
                    continue
                if message.get("type") == "Begin":
                    self.session_id = str(message.get("id") or "")
                    break
                event = parse_provider_message(message, format_turns=self._format_turns)
                if isinstance(event, (UpstreamError, UpstreamTerminated)):
                    raise UpstreamConnectError(reason=getattr(event, "message", "session terminated"))
        except UpstreamConnectError:
            await self.close()
            raise
        except Exception as exc:
            await self.close()
            raise UpstreamConnectError(reason=str(exc) or type(exc).__name__) from exc
        self._state = UpstreamState.ESTABLISHED
        logger.info("upstream: session %s established", self.session_id)

    async def send_audio(self, frame: bytes) -> None:
        if self._ws is None or self._state is UpstreamState.CLOSED:
            return
        await self._ws.send(frame)
        if self._state is UpstreamState.ESTABLISHED:
            self._state = UpstreamState.STREAMING

    async def events(self) -> AsyncIterator[UpstreamEvent]:
        if self._ws is None:
            return
        try:
            async for raw in self._ws:
                message = self._decode(raw)
                if message is None:
                    continue
                event = parse_provider_message(message, format_turns=self._format_turns)
                if event is None:
                    continue
                yield event
                if isinstance(event, UpstreamTerminated):
                    return
        except websockets.ConnectionClosed as exc:
            if self._state is not UpstreamState.CLOSED:
                logger.info("upstream: session %s closed by provider (%s)", self.session_id, exc)
        finally:
            self._state = UpstreamState.CLOSED

    async def close(self) -> None:
        self._state = UpstreamState.CLOSED
        ws, self._ws = self._ws, None
        if ws is None:
            return
        with contextlib.suppress(Exception):
            await ws.send(orjson.dumps({"type": "Terminate"}).decode("utf-8"))
        with contextlib.suppress(Exception):
            await ws.close()

    @staticmethod
    def _decode(raw: Any) -> dict[str, Any] | None:
        if isinstance(raw, (bytes, bytearray)):
            return None
        try:
            message = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.debug("upstream: ignoring non-JSON frame")
            return None
        return message if isinstance(message, dict) else None


__all__ = ["AssemblyAISession", "parse_provider_message"]
