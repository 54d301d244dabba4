"""Energy-based voice activity detection."""

from __future__ import annotations

from dataclasses import dataclass

from .frame_kind import FrameKind


@dataclass(frozen=True, slots=True)
class VadDecision:
    kind: FrameKind
    transmit: bool
    keep_alive: bool


class VoiceActivityDetector:
    """Classify frames by RMS and decide what the capture engine sends.

    Speech is transmitted once it has lasted `min_speech_duration_ms`. Noise and
    silence are never transmitted; both may trigger a keep-alive at most once
    per `keep_alive_interval_ms`. Speech tracking resets after
    `min_speech_duration_ms` without a speech frame.
    """

    def __init__(
        self,
        *,
        speech_threshold: float,
        background_noise_threshold: float,
        min_speech_duration_ms: float,
        keep_alive_interval_ms: float,
    ) -> None:
        self.speech_threshold = float(speech_threshold)
        self.background_noise_threshold = float(background_noise_threshold)
        self.min_speech_duration_ms = float(min_speech_duration_ms)
        self.keep_alive_interval_ms = float(keep_alive_interval_ms)
        self.reset()

    def reset(self) -> None:
        self.speech_start_ms: float | None = None
        self.last_speech_ms: float | None = None
        self.last_keep_alive_ms: float | None = None

    @property
    def speech_active(self) -> bool:
        return self.speech_start_ms is not None

    def classify(self, level: float) -> FrameKind:
        if level > self.speech_threshold:
            return FrameKind.SPEECH
        if level > self.background_noise_threshold:
            return FrameKind.NOISE
        return FrameKind.SILENCE

    def update(self, level: float, now_ms: float) -> VadDecision:
        kind = self.classify(level)

        if kind is FrameKind.SPEECH:
            if self.speech_start_ms is None:
                self.speech_start_ms = now_ms
            self.last_speech_ms = now_ms
            transmit = (now_ms - self.speech_start_ms) >= self.min_speech_duration_ms
            if transmit:
                # Real audio keeps the upstream alive on its own.
                self.last_keep_alive_ms = now_ms
            return VadDecision(kind=kind, transmit=transmit, keep_alive=False)

        if (
            self.speech_start_ms is not None
            and self.last_speech_ms is not None
            and (now_ms - self.last_speech_ms) > self.min_speech_duration_ms
        ):
            self.speech_start_ms = None

        keep_alive = (
            self.last_keep_alive_ms is None or (now_ms - self.last_keep_alive_ms) >= self.keep_alive_interval_ms
        )
        if keep_alive:
            self.last_keep_alive_ms = now_ms
        return VadDecision(kind=kind, transmit=False, keep_alive=keep_alive)


__all__ = ["VadDecision", "VoiceActivityDetector"]
