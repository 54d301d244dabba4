"""PCM16 helpers for the capture engine."""

from __future__ import annotations

import numpy as np

from sttrelay.config.capture import CAPTURE_KEEP_ALIVE_SAMPLES, CAPTURE_KEEP_ALIVE_AMPLITUDE

PCM16_SCALE = 32767


def as_mono_float(samples) -> np.ndarray:
    arr = np.asarray(samples, dtype=np.float32)
    if arr.ndim > 1:
        arr = arr.mean(axis=1)
    return arr.reshape(-1)


def float_to_pcm16(samples) -> bytes:
    """Clamp float samples to [-1, 1] and encode as little-endian int16."""
    mono = np.clip(as_mono_float(samples), -1.0, 1.0)
    return (mono * PCM16_SCALE).astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / PCM16_SCALE


def frame_rms(samples) -> float:
    mono = as_mono_float(samples)
    if mono.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(mono, dtype=np.float64))))


def pcm16_duration_ms(num_bytes: int, sample_rate: int) -> float:
    return (num_bytes / 2) / float(sample_rate) * 1000.0


def keep_alive_frame(
    *,
    samples: int = CAPTURE_KEEP_ALIVE_SAMPLES,
    amplitude: int = CAPTURE_KEEP_ALIVE_AMPLITUDE,
    rng: np.random.Generator | None = None,
) -> bytes:
    """Low-amplitude random PCM16 noise: holds the upstream open, never transcribes."""
    rng = rng or np.random.default_rng()
    noise = rng.integers(-amplitude, amplitude + 1, size=int(samples))
    return noise.astype("<i2").tobytes()


__all__ = [
    "PCM16_SCALE",
    "as_mono_float",
    "float_to_pcm16",
    "frame_rms",
    "keep_alive_frame",
    "pcm16_duration_ms",
    "pcm16_to_float",
]
