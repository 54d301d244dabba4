"""Client audio capture defaults."""

from __future__ import annotations

CAPTURE_SAMPLE_RATE = 16000
CAPTURE_FRAME_SAMPLES = 4096

# VAD energy thresholds (RMS of float samples in [-1, 1])
CAPTURE_SPEECH_THRESHOLD = 0.01
CAPTURE_BACKGROUND_NOISE_THRESHOLD = 0.003
CAPTURE_MIN_SPEECH_DURATION_MS = 200.0

CAPTURE_KEEP_ALIVE_INTERVAL_MS = 500.0
CAPTURE_MAX_BUFFER_MS = 100.0

# Keep-alive frames are random PCM16 noise of this peak amplitude, 10 ms long.
CAPTURE_KEEP_ALIVE_AMPLITUDE = 50
CAPTURE_KEEP_ALIVE_SAMPLES = 160

__all__ = [
    "CAPTURE_BACKGROUND_NOISE_THRESHOLD",
    "CAPTURE_FRAME_SAMPLES",
    "CAPTURE_KEEP_ALIVE_AMPLITUDE",
    "CAPTURE_KEEP_ALIVE_INTERVAL_MS",
    "CAPTURE_KEEP_ALIVE_SAMPLES",
    "CAPTURE_MAX_BUFFER_MS",
    "CAPTURE_MIN_SPEECH_DURATION_MS",
    "CAPTURE_SAMPLE_RATE",
    "CAPTURE_SPEECH_THRESHOLD",
]
