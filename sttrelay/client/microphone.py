"""Microphone source backed by `sounddevice`.

The PortAudio callback only copies the block and hands it to the event loop;
VAD and encoding run on the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from collections.abc import Callable

import numpy as np
import sounddevice as sd

from sttrelay.errors import CaptureError
from sttrelay.config.capture import CAPTURE_SAMPLE_RATE, CAPTURE_FRAME_SAMPLES

logger = logging.getLogger(__name__)

FrameFn = Callable[[np.ndarray], None]
ErrorFn = Callable[[CaptureError], None]


class MicrophoneSource:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_frame: FrameFn,
        on_error: ErrorFn,
        *,
        sample_rate: int = CAPTURE_SAMPLE_RATE,
        frame_samples: int = CAPTURE_FRAME_SAMPLES,
        device: int | str | None = None,
    ) -> None:
        self._loop = loop
        self._on_frame = on_frame
        self._on_error = on_error
        self.sample_rate = int(sample_rate)
        self.frame_samples = int(frame_samples)
        self.device = device
        self._stream: sd.InputStream | None = None

    @property
    def active(self) -> bool:
        return self._stream is not None and bool(self._stream.active)

    def start(self) -> None:
        if self._stream is not None:
            return
        try:
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                device=self.device,
                blocksize=self.frame_samples,
                callback=self._audio_callback,
                finished_callback=self._finished_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, OSError, ValueError) as exc:
            self._stream = None
            raise CaptureError(reason=f"microphone unavailable: {exc}") from exc
        logger.info("microphone: streaming %s Hz, %s samples/frame", self.sample_rate, self.frame_samples)

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError:
            logger.debug("microphone: close failed", exc_info=True)

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info: Any, status: sd.CallbackFlags) -> None:
        if status:
            logger.debug("microphone: %s", status)
        self._loop.call_soon_threadsafe(self._on_frame, indata[:, 0].copy())

    def _finished_callback(self) -> None:
        # Fires on device loss as well as on our own stop().
        if self._stream is not None:
            self._loop.call_soon_threadsafe(self._on_error, CaptureError(reason="audio input stream ended"))


__all__ = ["MicrophoneSource"]
