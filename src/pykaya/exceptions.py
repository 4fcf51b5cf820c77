"""Custom exception hierarchy for pykaya."""

from __future__ import annotations


class KayaError(Exception):
    """Base exception for all pykaya errors."""


class KayaConfigError(KayaError):
    """Invalid or missing configuration."""


class VersionResolutionError(KayaError):
    """Remote protocol version lookup failed.

    Never fatal: the resolver falls back to the last-known-good version.
    """

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class SocketEstablishmentError(KayaError):
    """The link socket could not be constructed or connected."""


class CredentialPersistenceError(KayaError):
    """Saving the credential store failed."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class CredentialDeletionError(CredentialPersistenceError):
    """Deleting the credential store failed.

    The state is inconsistent but recoverable: the next pairing cycle
    overwrites whatever was left behind.
    """


class PairingCodeError(KayaError):
    """A pairing challenge could not be rendered as a QR image."""


class DisconnectError(KayaError):
    """The network layer closed the session.

    Carries the raw status code and/or symbolic reason reported by the
    network layer; either may be ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)
