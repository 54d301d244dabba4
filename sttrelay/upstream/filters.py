"""Transcript confidence and noise filtering."""

from __future__ import annotations

import re
from collections.abc import Iterable

from sttrelay.config.upstream import (
    NOISE_WORDS,
    GIBBERISH_PATTERN,
    MIN_TRANSCRIPT_CHARS,
    REPEATED_CHAR_PATTERN,
    DEFAULT_STT_MIN_CONFIDENCE,
)

from .types import TranscriptEvent


class TranscriptFilter:
    """Decide whether a transcript event is worth forwarding to the client.

    An event is dropped when its confidence (if supplied) is below
    `min_confidence`, or when its normalized text is too short, a noise word,
    a single repeated character, or a run of consonants.
    """

    def __init__(
        self,
        *,
        min_confidence: float = DEFAULT_STT_MIN_CONFIDENCE,
        noise_words: Iterable[str] = NOISE_WORDS,
        min_chars: int = MIN_TRANSCRIPT_CHARS,
        repeated_char_pattern: str = REPEATED_CHAR_PATTERN,
        gibberish_pattern: str = GIBBERISH_PATTERN,
    ) -> None:
        self.min_confidence = float(min_confidence)
        self.noise_words = frozenset(w.strip().lower() for w in noise_words)
        self.min_chars = int(min_chars)
        self._repeated = re.compile(repeated_char_pattern)
        self._gibberish = re.compile(gibberish_pattern)

    @staticmethod
    def normalize(text: str) -> str:
        return (text or "").strip().lower()

    def is_noise(self, text: str) -> bool:
        normalized = self.normalize(text)
        if len(normalized) < self.min_chars:
            return True
        if normalized in self.noise_words:
            return True
        if self._repeated.match(normalized):
            return True
        return bool(self._gibberish.match(normalized))

    def accepts(self, event: TranscriptEvent) -> bool:
        if event.confidence is not None and event.confidence < self.min_confidence:
            return False
        return not self.is_noise(event.text)


__all__ = ["TranscriptFilter"]
