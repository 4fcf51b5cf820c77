"""Curve25519 key pairs and initial credentials for an unpaired device.

A device that has never paired needs a noise key, an ephemeral pairing
key, an identity key and a signed pre-key before it can request a
pairing challenge. The pre-key signature is produced by the network
layer when it first registers the pre-key.
"""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from pykaya.exceptions import KayaError


@dataclass(frozen=True)
class KeyPair:
    """Raw 32-byte Curve25519 key pair."""

    private: bytes
    public: bytes

    def as_dict(self) -> dict[str, bytes]:
        return {"private": self.private, "public": self.public}


def generate_key_pair() -> KeyPair:
    """Generate a fresh X25519 key pair.

    Raises
    ------
    KayaError
        If the backend cannot generate the key.
    """
    try:
        private_key = X25519PrivateKey.generate()
        private = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    except Exception as exc:
        raise KayaError(f"Key pair generation failed: {exc}") from exc
    return KeyPair(private=private, public=public)


def generate_registration_id() -> int:
    """Random 14-bit registration id (never zero)."""
    return secrets.randbits(14) or 1


def init_auth_creds() -> dict[str, Any]:
    """Credentials for a device that has not paired yet."""
    identity = generate_key_pair()
    return {
        "noiseKey": generate_key_pair().as_dict(),
        "pairingEphemeralKeyPair": generate_key_pair().as_dict(),
        "signedIdentityKey": identity.as_dict(),
        "signedPreKey": {"keyPair": generate_key_pair().as_dict(), "keyId": 1},
        "registrationId": generate_registration_id(),
        "advSecretKey": base64.b64encode(secrets.token_bytes(32)).decode("ascii"),
        "processedHistoryMessages": [],
        "nextPreKeyId": 1,
        "firstUnuploadedPreKeyId": 1,
        "accountSyncCounter": 0,
        "accountSettings": {"unarchiveChats": False},
        "registered": False,
    }
