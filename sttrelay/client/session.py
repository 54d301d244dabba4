"""Client session state machine: relay events in, message blocks out.

Pure state, no I/O: every timing decision takes an explicit `now` (seconds) so
the silence timer can be driven by a virtual clock in tests and by the
transport's watchdog in production.
"""

from __future__ import annotations

import time
import uuid
import logging
from enum import Enum
from typing import Any, Literal
from datetime import datetime, timezone
from dataclasses import field, dataclass
from collections.abc import Mapping, Callable, Iterable

from sttrelay.config.session import SESSION_SILENCE_TIMEOUT_S
from sttrelay.config.websocket import (
    WS_EVENT_ERROR,
    WS_EVENT_SESSION_ENDED,
    WS_EVENT_SESSION_CREATED,
    WS_EVENT_TRANSCRIPT_DELTA,
    WS_EVENT_CLIENT_IDENTIFIED,
    WS_EVENT_TRANSCRIPT_COMPLETED,
)

logger = logging.getLogger(__name__)

MergeDirection = Literal["up", "down"]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    STREAMING = "streaming"
    SILENCE_DETECTED = "silence_detected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass(slots=True)
class Message:
    id: str
    text: str
    timestamp: str
    is_partial: bool = True
    silence_segmented: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Message:
        return cls(
            id=str(data["id"]),
            text=str(data.get("text") or ""),
            timestamp=str(data.get("timestamp") or _iso_now()),
            is_partial=bool(data.get("is_partial", data.get("isPartial", False))),
            silence_segmented=bool(data.get("silence_segmented", data.get("silenceSegmented", False))),
        )


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def join_text(left: str, right: str) -> str:
    """Concatenate with a single space when both sides are non-empty."""
    left, right = left.strip(), right.strip()
    if left and right:
        return f"{left} {right}"
    return left or right


def _is_contiguous(indices: list[int]) -> bool:
    return bool(indices) and indices[-1] - indices[0] == len(indices) - 1


def detect_new_words(current: str, previous: str) -> list[str]:
    """Words appended by `current` relative to `previous`.

    A prefix-extension yields only the appended words; a shorter or otherwise
    non-incremental replacement yields every word of `current`.
    """
    current_words = current.split()
    if not current_words:
        return []
    previous_words = previous.split()
    if not previous_words or len(current_words) < len(previous_words):
        return current_words
    if current.strip().startswith(" ".join(previous_words)):
        return current_words[len(previous_words) :]
    return current_words


@dataclass(slots=True)
class _OpenMessage:
    message: Message
    committed: str = ""


@dataclass(slots=True)
class TranscriptSession:
    silence_timeout_s: float = SESSION_SILENCE_TIMEOUT_S
    now_fn: Callable[[], float] = time.monotonic
    id_fn: Callable[[], str] = _default_message_id

    state: ConnectionState = ConnectionState.DISCONNECTED
    messages: list[Message] = field(default_factory=list)
    partial_transcript: str = ""
    previous_partial: str = ""
    new_words: list[str] = field(default_factory=list)
    final_transcript: str = ""
    conversation_history: str = ""
    client_id: str | None = None
    session_id: str | None = None
    last_error: str | None = None
    last_event_at: float | None = None
    _open: _OpenMessage | None = None

    @property
    def current_message(self) -> Message | None:
        return self._open.message if self._open is not None else None

    @property
    def current_message_id(self) -> str | None:
        return self._open.message.id if self._open is not None else None

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def silence_deadline(self) -> float | None:
        if self._open is None or self.last_event_at is None:
            return None
        return self.last_event_at + self.silence_timeout_s

    def set_state(self, state: ConnectionState) -> None:
        if state is not self.state:
            logger.debug("session state %s -> %s", self.state.value, state.value)
            self.state = state

    def handle_event(self, frame: Mapping[str, Any], now: float | None = None) -> bool:
        """Apply one relay frame. Returns True when the message list may have changed."""
        msg_type = frame.get("type")
        if msg_type == WS_EVENT_TRANSCRIPT_DELTA:
            self.apply_partial(str(frame.get("delta") or ""), now)
            return True
        if msg_type == WS_EVENT_TRANSCRIPT_COMPLETED:
            self.apply_final(str(frame.get("transcript") or ""), now)
            return True
        if msg_type == WS_EVENT_SESSION_CREATED:
            self.session_id = frame.get("session_id")
            self.set_state(ConnectionState.STREAMING)
        elif msg_type == WS_EVENT_CLIENT_IDENTIFIED:
            self.client_id = frame.get("clientId")
        elif msg_type == WS_EVENT_SESSION_ENDED:
            logger.info("relay reported session end (duration=%s)", frame.get("duration"))
        elif msg_type == WS_EVENT_ERROR:
            error = frame.get("error")
            self.last_error = str(error.get("message") if isinstance(error, Mapping) else error)
            logger.warning("relay error: %s", self.last_error)
        return False

    def apply_partial(self, text: str, now: float | None = None) -> Message | None:
        now = self._now(now)
        self.check_silence(now)
        if self._open is None and not text.strip():
            return None
        self._touch(now)
        open_msg = self._ensure_open()

        self.new_words = detect_new_words(text, self.previous_partial)
        self.previous_partial = text
        self.partial_transcript = text
        open_msg.message.text = join_text(open_msg.committed, text)
        return open_msg.message

    def apply_final(self, text: str, now: float | None = None) -> Message | None:
        now = self._now(now)
        self.check_silence(now)
        if self._open is None and not text.strip():
            return None
        self._touch(now)
        open_msg = self._ensure_open()

        open_msg.committed = join_text(open_msg.committed, text)
        open_msg.message.text = open_msg.committed
        self._clear_partial()
        if text.strip():
            self.final_transcript = text.strip()
            self.conversation_history = join_text(self.conversation_history, text)
        return open_msg.message

    def check_silence(self, now: float | None = None) -> Message | None:
        """Close the open message if no event arrived for `silence_timeout_s`."""
        deadline = self.silence_deadline
        if deadline is None or self._now(now) < deadline:
            return None
        closed = self._close_open(silence_segmented=True)
        self._clear_partial()
        self.set_state(ConnectionState.SILENCE_DETECTED)
        if closed is not None:
            logger.info("silence segmented message %s", closed.id)
        return closed

    def create_new_message(self) -> Message | None:
        """Close the open message; the next transcript event starts a new one."""
        closed = self._close_open(silence_segmented=False)
        self._clear_partial()
        return closed

    def stop(self) -> Message | None:
        closed = self._close_open(silence_segmented=False)
        self._clear_partial()
        self.last_event_at = None
        self.set_state(ConnectionState.DISCONNECTED)
        return closed

    def clear_conversation(self) -> None:
        self.messages.clear()
        self._open = None
        self._clear_partial()
        self.final_transcript = ""
        self.conversation_history = ""
        self.last_event_at = None

    def restore_messages(self, restored: Iterable[Message | Mapping[str, Any]]) -> None:
        """Replace the list with previously saved messages, all treated as closed."""
        messages = [m if isinstance(m, Message) else Message.from_mapping(m) for m in restored]
        if not messages:
            return
        for message in messages:
            message.is_partial = False
        self.messages = messages
        self._open = None
        self._clear_partial()
        self.conversation_history = " ".join(m.text for m in messages if m.text.strip())

    def delete_messages(self, message_ids: Iterable[str]) -> int:
        ids = set(message_ids)
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id not in ids]
        if self._open is not None and self._open.message.id in ids:
            self._open = None
            self._clear_partial()
        return before - len(self.messages)

    def merge_messages(
        self,
        source_ids: Iterable[str],
        target_ids: Iterable[str],
        direction: MergeDirection,
    ) -> Message | None:
        """Fold the source group's text into the adjacent target group and drop the sources.

        `up` merges a group into the one directly above it (source text is
        appended to the target); `down` merges into the group directly below
        (source text is prepended). Returns None, changing nothing, when either
        group is empty or not contiguous, or the two are not neighbours.
        """
        sources = set(source_ids)
        targets = set(target_ids) - sources
        source_idx = [i for i, m in enumerate(self.messages) if m.id in sources]
        target_idx = [i for i, m in enumerate(self.messages) if m.id in targets]
        if not _is_contiguous(source_idx) or not _is_contiguous(target_idx):
            return None
        if direction == "up":
            adjacent = target_idx[-1] + 1 == source_idx[0]
            target = self.messages[target_idx[-1]]
        else:
            adjacent = source_idx[-1] + 1 == target_idx[0]
            target = self.messages[target_idx[0]]
        source_text = " ".join(self.messages[i].text.strip() for i in source_idx if self.messages[i].text.strip())
        if not adjacent or not source_text:
            return None

        if direction == "up":
            target.text = join_text(target.text, source_text)
        else:
            target.text = join_text(source_text, target.text)
        target.is_partial = False

        self.messages = [m for m in self.messages if m.id not in sources]
        if self._open is not None and self._open.message.id in sources | {target.id}:
            self._open = None
            self._clear_partial()
        return target

    def _now(self, now: float | None) -> float:
        return self.now_fn() if now is None else now

    def _touch(self, now: float) -> None:
        self.last_event_at = now
        self.set_state(ConnectionState.CONNECTED)

    def _ensure_open(self) -> _OpenMessage:
        if self._open is None:
            message = Message(id=self.id_fn(), text="", timestamp=_iso_now())
            self.messages.append(message)
            self._open = _OpenMessage(message=message)
        return self._open

    def _close_open(self, *, silence_segmented: bool) -> Message | None:
        open_msg, self._open = self._open, None
        if open_msg is None:
            return None
        open_msg.message.is_partial = False
        open_msg.message.silence_segmented = silence_segmented
        return open_msg.message

    def _clear_partial(self) -> None:
        self.partial_transcript = ""
        self.previous_partial = ""
        self.new_words = []


__all__ = [
    "ConnectionState",
    "MergeDirection",
    "Message",
    "TranscriptSession",
    "detect_new_words",
    "join_text",
]
