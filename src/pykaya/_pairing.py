"""Render pairing challenges as scannable QR images."""

from __future__ import annotations

import segno

from pykaya.exceptions import PairingCodeError


def pairing_code_data_uri(challenge: str, *, scale: int = 6, border: int = 4) -> str:
    """Encode *challenge* as a QR code and return it as a PNG data URI.

    Raises
    ------
    PairingCodeError
        If the challenge is empty or too long to encode.
    """
    if not challenge:
        raise PairingCodeError("Pairing challenge is empty")
    try:
        qr = segno.make_qr(challenge, error="m")
        return qr.png_data_uri(scale=scale, border=border)
    except ValueError as exc:
        raise PairingCodeError(f"Pairing challenge cannot be encoded: {exc}") from exc
