"""Upstream streaming STT provider configuration."""

from __future__ import annotations

ENV_STT_SAMPLE_RATE = "STT_SAMPLE_RATE"
ENV_STT_ENCODING = "STT_ENCODING"
ENV_STT_MIN_CONFIDENCE = "STT_MIN_CONFIDENCE"
ENV_STT_UPSTREAM_CONNECT_TIMEOUT_S = "STT_UPSTREAM_CONNECT_TIMEOUT_S"
ENV_ASSEMBLYAI_STREAMING_URL = "ASSEMBLYAI_STREAMING_URL"

DEFAULT_STT_SAMPLE_RATE = 16000
DEFAULT_STT_ENCODING = "pcm_s16le"
DEFAULT_STT_MIN_CONFIDENCE = 0.7
DEFAULT_STT_UPSTREAM_CONNECT_TIMEOUT_S = 10.0
DEFAULT_ASSEMBLYAI_STREAMING_URL = "wss://streaming.assemblyai.com/v3/ws"

UPSTREAM_PROVIDER_NAME = "assemblyai"

# Transcript noise policy
NOISE_WORDS: frozenset[str] = frozenset({"uh", "um", "ah", "oh", "hmm", "er", "the", "a", "an"})
MIN_TRANSCRIPT_CHARS = 3
REPEATED_CHAR_PATTERN = r"^(.)\1{2,}$"
GIBBERISH_PATTERN = r"^[bcdfghjklmnpqrstvwxyz]{3,}$"

__all__ = [
    "DEFAULT_ASSEMBLYAI_STREAMING_URL",
    "DEFAULT_STT_ENCODING",
    "DEFAULT_STT_MIN_CONFIDENCE",
    "DEFAULT_STT_SAMPLE_RATE",
    "DEFAULT_STT_UPSTREAM_CONNECT_TIMEOUT_S",
    "ENV_ASSEMBLYAI_STREAMING_URL",
    "ENV_STT_ENCODING",
    "ENV_STT_MIN_CONFIDENCE",
    "ENV_STT_SAMPLE_RATE",
    "ENV_STT_UPSTREAM_CONNECT_TIMEOUT_S",
    "GIBBERISH_PATTERN",
    "MIN_TRANSCRIPT_CHARS",
    "NOISE_WORDS",
    "REPEATED_CHAR_PATTERN",
    "UPSTREAM_PROVIDER_NAME",
]
