"""Audio capture engine: VAD gating, PCM16 encoding, coalescing and keep-alives."""

from __future__ import annotations

import time
import logging
from typing import Any
from dataclasses import asdict, replace, dataclass
from collections.abc import Callable

import numpy as np

from sttrelay.errors import CaptureError
from sttrelay.config.capture import (
    CAPTURE_SAMPLE_RATE,
    CAPTURE_MAX_BUFFER_MS,
    CAPTURE_FRAME_SAMPLES,
    CAPTURE_SPEECH_THRESHOLD,
    CAPTURE_KEEP_ALIVE_INTERVAL_MS,
    CAPTURE_MIN_SPEECH_DURATION_MS,
    CAPTURE_BACKGROUND_NOISE_THRESHOLD,
)

from .buffer import ChunkBuffer
from .frame_kind import FrameKind
from .vad import VadDecision, VoiceActivityDetector
from .pcm import frame_rms, float_to_pcm16, keep_alive_frame

logger = logging.getLogger(__name__)

SendFn = Callable[[bytes], None]
ErrorFn = Callable[[CaptureError], None]


@dataclass(frozen=True, slots=True)
class CaptureConfig:
    sample_rate: int = CAPTURE_SAMPLE_RATE
    frame_samples: int = CAPTURE_FRAME_SAMPLES
    speech_threshold: float = CAPTURE_SPEECH_THRESHOLD
    background_noise_threshold: float = CAPTURE_BACKGROUND_NOISE_THRESHOLD
    min_speech_duration_ms: float = CAPTURE_MIN_SPEECH_DURATION_MS
    keep_alive_interval_ms: float = CAPTURE_KEEP_ALIVE_INTERVAL_MS
    max_buffer_ms: float = CAPTURE_MAX_BUFFER_MS
    vad_enabled: bool = True


class CaptureEngine:
    """Decide, per float frame, whether to send audio, a keep-alive or nothing.

    `send` is called synchronously from `process_frame` and must not block; the
    transport hands frames to its event loop. Buffered audio is always flushed
    before a keep-alive and before teardown so frames leave in capture order.
    """

    def __init__(
        self,
        send: SendFn,
        *,
        config: CaptureConfig | None = None,
        on_error: ErrorFn | None = None,
        now_fn: Callable[[], float] | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._send = send
        self._on_error = on_error
        self._now = now_fn or time.monotonic
        self._rng = rng or np.random.default_rng()
        self.config = config or CaptureConfig()
        self._vad = self._build_vad(self.config)
        self._buffer = ChunkBuffer(sample_rate=self.config.sample_rate, max_buffer_ms=self.config.max_buffer_ms)
        self.is_recording = False
        self.frames_sent = 0
        self.keep_alives_sent = 0

    @staticmethod
    def _build_vad(config: CaptureConfig) -> VoiceActivityDetector:
        return VoiceActivityDetector(
            speech_threshold=config.speech_threshold,
            background_noise_threshold=config.background_noise_threshold,
            min_speech_duration_ms=config.min_speech_duration_ms,
            keep_alive_interval_ms=config.keep_alive_interval_ms,
        )

    def start(self) -> None:
        self._vad.reset()
        self.is_recording = True
        logger.info(
            "capture: started (vad=%s, sample_rate=%s)",
            "on" if self.config.vad_enabled else "off",
            self.config.sample_rate,
        )

    def stop(self) -> None:
        """Flush pending audio, then stop accepting frames."""
        if not self.is_recording:
            return
        self._flush()
        self.is_recording = False
        logger.info("capture: stopped (frames=%s, keep_alives=%s)", self.frames_sent, self.keep_alives_sent)

    def fail(self, error: CaptureError) -> None:
        """Report a device error and halt capture."""
        logger.error("capture: %s", error.reason)
        self.stop()
        if self._on_error is not None:
            self._on_error(error)

    def set_vad_enabled(self, enabled: bool) -> None:
        self.update_config(vad_enabled=enabled)

    def update_config(self, **changes: Any) -> CaptureConfig:
        self.config = replace(self.config, **changes)
        vad = self._vad
        vad.speech_threshold = self.config.speech_threshold
        vad.background_noise_threshold = self.config.background_noise_threshold
        vad.min_speech_duration_ms = self.config.min_speech_duration_ms
        vad.keep_alive_interval_ms = self.config.keep_alive_interval_ms
        self._buffer.max_buffer_ms = self.config.max_buffer_ms
        return self.config

    def process_frame(self, samples: Any, now: float | None = None) -> VadDecision | None:
        """Handle one fixed-size frame of float samples. `now` is in seconds."""
        if not self.is_recording:
            return None
        now_ms = (self._now() if now is None else now) * 1000.0

        if not self.config.vad_enabled:
            self._enqueue(float_to_pcm16(samples))
            return VadDecision(kind=FrameKind.SPEECH, transmit=True, keep_alive=False)

        decision = self._vad.update(frame_rms(samples), now_ms)
        if decision.transmit:
            self._enqueue(float_to_pcm16(samples))
        elif decision.keep_alive:
            self._flush()
            self._emit(keep_alive_frame(rng=self._rng))
            self.keep_alives_sent += 1
        return decision

    def stream_info(self) -> dict[str, Any]:
        return {
            "is_recording": self.is_recording,
            "mode": "vad" if self.config.vad_enabled else "continuous",
            "buffered_chunks": len(self._buffer),
            "buffered_ms": self._buffer.buffered_ms,
            "speech_active": self._vad.speech_active,
            "frames_sent": self.frames_sent,
            "keep_alives_sent": self.keep_alives_sent,
            "config": asdict(self.config),
        }

    def _enqueue(self, pcm: bytes) -> None:
        payload = self._buffer.add(pcm)
        if payload is not None:
            self._emit(payload)
            self.frames_sent += 1

    def _flush(self) -> None:
        payload = self._buffer.flush()
        if payload is not None:
            self._emit(payload)
            self.frames_sent += 1

    def _emit(self, payload: bytes) -> None:
        try:
            self._send(payload)
        except Exception:
            logger.debug("capture: send failed", exc_info=True)


__all__ = ["CaptureConfig", "CaptureEngine"]
