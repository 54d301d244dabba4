from __future__ import annotations

import numpy as np

from sttrelay.client.buffer import ChunkBuffer
from sttrelay.client.pcm import (
    PCM16_SCALE,
    frame_rms,
    float_to_pcm16,
    pcm16_to_float,
    keep_alive_frame,
    pcm16_duration_ms,
)


def test_pcm_round_trip_within_one_step() -> None:
    rng = np.random.default_rng(7)
    samples = rng.uniform(-1.0, 1.0, size=4096).astype(np.float32)
    decoded = pcm16_to_float(float_to_pcm16(samples))
    assert decoded.shape == samples.shape
    assert np.max(np.abs(decoded - samples)) <= 1.0 / PCM16_SCALE + 1e-6


def test_out_of_range_samples_are_clamped() -> None:
    encoded = np.frombuffer(float_to_pcm16([2.0, -3.0, 0.0]), dtype="<i2")
    assert encoded.tolist() == [PCM16_SCALE, -PCM16_SCALE, 0]


def test_stereo_is_downmixed() -> None:
    encoded = float_to_pcm16(np.array([[0.5, 0.5], [0.0, 0.0]], dtype=np.float32))
    assert len(encoded) == 4


def test_frame_rms() -> None:
    assert frame_rms([]) == 0.0
    assert frame_rms(np.full(160, 0.5)) == 0.5


def test_keep_alive_frame_is_small_and_quiet() -> None:
    frame = keep_alive_frame(rng=np.random.default_rng(0))
    assert len(frame) == 320
    assert len(frame) < 1024
    values = np.frombuffer(frame, dtype="<i2")
    assert np.max(np.abs(values)) <= 50
    assert pcm16_duration_ms(len(frame), 16000) == 10.0


def test_chunk_buffer_coalesces_until_threshold() -> None:
    buffer = ChunkBuffer(sample_rate=16000, max_buffer_ms=100)
    chunk = b"\x01\x00" * 320  # 20 ms
    for _ in range(4):
        assert buffer.add(chunk) is None
    assert buffer.buffered_ms == 80.0
    payload = buffer.add(chunk)
    assert payload == chunk * 5
    assert len(buffer) == 0
    assert buffer.flush() is None
