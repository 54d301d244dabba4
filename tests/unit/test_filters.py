from __future__ import annotations

import pytest

from sttrelay.upstream.types import TranscriptEvent
from sttrelay.upstream.filters import TranscriptFilter


def _final(text: str, confidence: float | None = None) -> TranscriptEvent:
    return TranscriptEvent(kind="final", text=text, confidence=confidence)


def test_noise_word_dropped_regardless_of_confidence() -> None:
    f = TranscriptFilter(min_confidence=0.7)
    assert f.accepts(_final("the", 0.9)) is False


def test_low_confidence_dropped_and_high_confidence_forwarded() -> None:
    f = TranscriptFilter(min_confidence=0.7)
    assert f.accepts(_final("databases", 0.5)) is False
    assert f.accepts(_final("databases", 0.8)) is True


def test_missing_confidence_passes() -> None:
    f = TranscriptFilter(min_confidence=0.7)
    assert f.accepts(_final("databases")) is True


@pytest.mark.parametrize(
    "text",
    ["", "  ", "ok", "Um", " HMM ", "aaa", "zzzz", "brr", "hmmm", "xkcd"],
)
def test_noise_patterns_dropped(text: str) -> None:
    assert TranscriptFilter().is_noise(text) is True


@pytest.mark.parametrize("text", ["yes", "hello world", "rhythm and blues", "okay"])
def test_real_text_kept(text: str) -> None:
    assert TranscriptFilter().is_noise(text) is False


def test_noise_words_are_configurable() -> None:
    f = TranscriptFilter(noise_words={"like"})
    assert f.is_noise("like") is True
    assert f.is_noise("the") is False
