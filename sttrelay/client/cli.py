"""Stream the default microphone to a relay and print message blocks as they close."""

from __future__ import annotations

import os
import asyncio
import logging
import argparse
import contextlib
from dataclasses import replace

from sttrelay.errors import CaptureError
from sttrelay.config.secrets import ENV_RELAY_API_KEY
from sttrelay.runtime.logging import configure_logging

from .capture import CaptureConfig
from .session import TranscriptSession
from .microphone import MicrophoneSource
from .transport import TranscriptionClient

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "ws://127.0.0.1:8000/ws"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live microphone transcription through the relay")
    parser.add_argument("--url", default=os.getenv("RELAY_URL", DEFAULT_RELAY_URL), help="Relay WebSocket URL")
    parser.add_argument("--api-key", default=os.getenv(ENV_RELAY_API_KEY), help="Relay API key (optional)")
    parser.add_argument("--device", default=None, help="Input device index or name")
    parser.add_argument("--no-vad", action="store_true", help="Stream every frame, without voice activity gating")
    parser.add_argument("--speech-threshold", type=float, default=None, help="RMS above which a frame is speech")
    return parser


class _Printer:
    def __init__(self) -> None:
        self._printed: set[str] = set()
        self._last_partial = ""

    def __call__(self, session: TranscriptSession) -> None:
        for message in session.messages:
            if message.is_partial or message.id in self._printed:
                continue
            self._printed.add(message.id)
            print(f"\n[{message.timestamp}] {message.text}", flush=True)
        current = session.current_message
        if current is not None and current.text != self._last_partial:
            self._last_partial = current.text
            print(f"\r… {current.text}", end="", flush=True)


async def _run(args: argparse.Namespace) -> int:
    config = CaptureConfig(vad_enabled=not args.no_vad)
    if args.speech_threshold is not None:
        config = replace(config, speech_threshold=args.speech_threshold)

    client = TranscriptionClient(args.url, api_key=args.api_key, capture_config=config, on_update=_Printer())
    loop = asyncio.get_running_loop()
    failed = asyncio.Event()

    def _on_error(error: CaptureError) -> None:
        client.capture.fail(error)
        failed.set()

    device = int(args.device) if args.device and args.device.isdigit() else args.device
    mic = MicrophoneSource(
        loop,
        client.capture.process_frame,
        _on_error,
        sample_rate=config.sample_rate,
        frame_samples=config.frame_samples,
        device=device,
    )

    await client.start()
    try:
        mic.start()
    except CaptureError as exc:
        logger.error("%s", exc.reason)
        await client.stop()
        return 2

    waiters = [asyncio.create_task(failed.wait()), asyncio.create_task(client.wait_closed())]
    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            waiter.cancel()
        mic.stop()
        await client.stop()
    return 1 if failed.is_set() else 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _build_parser().parse_args(argv)
    with contextlib.suppress(KeyboardInterrupt):
        return asyncio.run(_run(args))
    return 0


__all__ = ["main"]
