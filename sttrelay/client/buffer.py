"""Coalescing buffer for outgoing PCM16 audio."""

from __future__ import annotations

from .pcm import pcm16_duration_ms


class ChunkBuffer:
    def __init__(self, *, sample_rate: int, max_buffer_ms: float) -> None:
        self.sample_rate = int(sample_rate)
        self.max_buffer_ms = float(max_buffer_ms)
        self._chunks: list[bytes] = []
        self._size = 0

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def buffered_ms(self) -> float:
        return pcm16_duration_ms(self._size, self.sample_rate)

    def add(self, pcm: bytes) -> bytes | None:
        """Buffer a chunk; return the coalesced payload once `max_buffer_ms` is reached."""
        if pcm:
            self._chunks.append(pcm)
            self._size += len(pcm)
        if self._chunks and self.buffered_ms >= self.max_buffer_ms:
            return self.flush()
        return None

    def flush(self) -> bytes | None:
        if not self._chunks:
            return None
        payload = b"".join(self._chunks)
        self._chunks.clear()
        self._size = 0
        return payload


__all__ = ["ChunkBuffer"]
