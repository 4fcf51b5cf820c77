"""pykaya - keep a linked-device messaging session alive and serve its pairing code."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pykaya")
except PackageNotFoundError:
    __version__ = "0+local"
from pykaya._auth_store import SingleFileAuthStore
from pykaya.config import BrokerProfile, KayaConfig
from pykaya.exceptions import (
    CredentialDeletionError,
    CredentialPersistenceError,
    DisconnectError,
    KayaConfigError,
    KayaError,
    PairingCodeError,
    SocketEstablishmentError,
    VersionResolutionError,
)
from pykaya.manager import PendingRestart, SessionManager
from pykaya.models import (
    AuthState,
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectInfo,
    DisconnectReason,
    MessagesUpsert,
    ProtocolVersion,
    StatusSnapshot,
    VersionResolution,
)
from pykaya.state.policy import RestartBucket, RestartDecision, decide_restart
from pykaya.state.status import StatusState

__all__ = [
    "__version__",
    "AuthState",
    "BrokerProfile",
    "ConnectionUpdate",
    "CredentialDeletionError",
    "CredentialPersistenceError",
    "CredentialsUpdate",
    "DisconnectError",
    "DisconnectInfo",
    "DisconnectReason",
    "KayaConfig",
    "KayaConfigError",
    "KayaError",
    "MessagesUpsert",
    "PairingCodeError",
    "PendingRestart",
    "ProtocolVersion",
    "RestartBucket",
    "RestartDecision",
    "SessionManager",
    "SingleFileAuthStore",
    "SocketEstablishmentError",
    "StatusSnapshot",
    "StatusState",
    "VersionResolution",
    "VersionResolutionError",
    "decide_restart",
]
