"""WebSocket protocol configuration and constants."""

from __future__ import annotations

import os

WS_ENDPOINT_PATH = (os.getenv("WS_ENDPOINT_PATH") or "/ws").strip() or "/ws"

# Frame keys
WS_KEY_TYPE = "type"
WS_KEY_MESSAGE = "message"

# Control messages
WS_CONTROL_PING = "ping"
WS_CONTROL_PONG = "pong"
WS_CONTROL_IDENTIFY = "identify_client"

# Outbound event types
WS_EVENT_SESSION_CREATED = "session.created"
WS_EVENT_TRANSCRIPT_DELTA = "conversation.item.input_audio_transcription.delta"
WS_EVENT_TRANSCRIPT_COMPLETED = "conversation.item.input_audio_transcription.completed"
WS_EVENT_CUSTOM_PARTIAL = "custom_transcription_partial"
WS_EVENT_CUSTOM_FINAL = "custom_transcription_final"
WS_EVENT_CLIENT_IDENTIFIED = "client_identified"
WS_EVENT_SESSION_ENDED = "session_ended"
WS_EVENT_ERROR = "error"

# Close codes
WS_CLOSE_NORMAL_CODE = 1000
WS_CLOSE_UPSTREAM_FAILURE_CODE = 1011
WS_CLOSE_IDLE_CODE = 4000
WS_CLOSE_UNAUTHORIZED_CODE = 4001
WS_CLOSE_BUSY_CODE = 4002
WS_CLOSE_MAX_DURATION_CODE = 4003

WS_CLOSE_IDLE_REASON = "idle timeout"
WS_CLOSE_MAX_DURATION_REASON = "max session duration reached"
WS_CLOSE_UPSTREAM_CONNECT_REASON = "Failed to connect to transcription service"
WS_CLOSE_UPSTREAM_ENDED_REASON = "transcription session ended"
WS_CLOSE_SHUTDOWN_REASON = "server shutting down"

# Errors (error.code values)
WS_ERROR_AUTH_FAILED = "authentication_failed"
WS_ERROR_SERVER_AT_CAPACITY = "server_at_capacity"
WS_ERROR_INVALID_MESSAGE = "invalid_message"
WS_ERROR_UPSTREAM = "upstream_error"

__all__ = [
    "WS_CLOSE_BUSY_CODE",
    "WS_CLOSE_IDLE_CODE",
    "WS_CLOSE_IDLE_REASON",
    "WS_CLOSE_MAX_DURATION_CODE",
    "WS_CLOSE_MAX_DURATION_REASON",
    "WS_CLOSE_NORMAL_CODE",
    "WS_CLOSE_SHUTDOWN_REASON",
    "WS_CLOSE_UNAUTHORIZED_CODE",
    "WS_CLOSE_UPSTREAM_CONNECT_REASON",
    "WS_CLOSE_UPSTREAM_ENDED_REASON",
    "WS_CLOSE_UPSTREAM_FAILURE_CODE",
    "WS_CONTROL_IDENTIFY",
    "WS_CONTROL_PING",
    "WS_CONTROL_PONG",
    "WS_ENDPOINT_PATH",
    "WS_ERROR_AUTH_FAILED",
    "WS_ERROR_INVALID_MESSAGE",
    "WS_ERROR_SERVER_AT_CAPACITY",
    "WS_ERROR_UPSTREAM",
    "WS_EVENT_CLIENT_IDENTIFIED",
    "WS_EVENT_CUSTOM_FINAL",
    "WS_EVENT_CUSTOM_PARTIAL",
    "WS_EVENT_ERROR",
    "WS_EVENT_SESSION_CREATED",
    "WS_EVENT_SESSION_ENDED",
    "WS_EVENT_TRANSCRIPT_COMPLETED",
    "WS_EVENT_TRANSCRIPT_DELTA",
    "WS_KEY_MESSAGE",
    "WS_KEY_TYPE",
]
