"""Inbound frame classification: JSON control message or raw audio.

Anything that is not a JSON object with a non-empty string `type` is treated
as audio. Text frames that fail that test are forwarded as their UTF-8 bytes.
"""

from __future__ import annotations

from typing import Any, Literal
from dataclasses import dataclass

import orjson

from sttrelay.config.websocket import WS_KEY_TYPE


@dataclass(frozen=True, slots=True)
class InboundFrame:
    kind: Literal["control", "audio"]
    control: dict[str, Any] | None = None
    audio: bytes = b""


def parse_control_message(raw: str | bytes) -> dict[str, Any] | None:
    try:
        msg = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(msg, dict):
        return None
    msg_type = msg.get(WS_KEY_TYPE)
    if not isinstance(msg_type, str) or not msg_type.strip():
        return None
    msg[WS_KEY_TYPE] = msg_type.strip()
    return msg


def classify_frame(*, text: str | None = None, data: bytes | None = None) -> InboundFrame:
    if text is not None:
        control = parse_control_message(text)
        if control is not None:
            return InboundFrame(kind="control", control=control)
        return InboundFrame(kind="audio", audio=text.encode("utf-8"))

    payload = bytes(data or b"")
    # Only JSON-looking binary frames are worth a parse attempt.
    if payload[:1] == b"{":
        control = parse_control_message(payload)
        if control is not None:
            return InboundFrame(kind="control", control=control)
    return InboundFrame(kind="audio", audio=payload)


__all__ = ["InboundFrame", "classify_frame", "parse_control_message"]
