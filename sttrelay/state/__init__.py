from .runtime import RuntimeDeps
from .settings import AppSettings
from .connection import ActivityRecord, ClientConnection

__all__ = ["ActivityRecord", "AppSettings", "ClientConnection", "RuntimeDeps"]
