"""Key material generation for fresh link sessions."""

from __future__ import annotations

from pykaya._crypto.keys import KeyPair, generate_key_pair, generate_registration_id, init_auth_creds

__all__ = [
    "KeyPair",
    "generate_key_pair",
    "generate_registration_id",
    "init_auth_creds",
]
