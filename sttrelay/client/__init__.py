"""Client core: audio capture engine, session state machine and relay transport.

The microphone source (`sttrelay.client.microphone`) is imported lazily by the
CLI only, so the rest of the client works without an audio device.
"""

from .pcm import float_to_pcm16, pcm16_to_float
from .capture import CaptureConfig, CaptureEngine
from .reconnect import ReconnectPolicy
from .session import Message, ConnectionState, TranscriptSession

__all__ = [
    "CaptureConfig",
    "CaptureEngine",
    "ConnectionState",
    "Message",
    "ReconnectPolicy",
    "TranscriptSession",
    "float_to_pcm16",
    "pcm16_to_float",
]
