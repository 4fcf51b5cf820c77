"""Data models for pykaya."""

from pykaya.models.auth import AuthState
from pykaya.models.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectInfo,
    DisconnectReason,
    MessagesUpsert,
    SocketEvent,
    parse_socket_event,
)
from pykaya.models.status import StatusSnapshot
from pykaya.models.version import ProtocolVersion, VersionResolution

__all__ = [
    "AuthState",
    "ConnectionUpdate",
    "CredentialsUpdate",
    "DisconnectInfo",
    "DisconnectReason",
    "MessagesUpsert",
    "ProtocolVersion",
    "SocketEvent",
    "StatusSnapshot",
    "VersionResolution",
    "parse_socket_event",
]
