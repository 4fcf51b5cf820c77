from __future__ import annotations

from pykaya._redact import redact_for_log


def test_redact_for_log_redacts_key_material() -> None:
    payload = {
        "registrationId": 42,
        "noiseKey": {"private": b"\x00" * 32, "public": b"\x01" * 32},
        "signedPreKey": {"keyId": 1},
        "me": {"id": "33600000000:1@s.whatsapp.net", "name": "Kaya"},
        "account": {"details": "abc", "accountSignatureKey": b"\x02" * 32},
    }

    redacted = redact_for_log(payload)
    assert redacted["noiseKey"] == "<redacted>"
    assert redacted["signedPreKey"] == "<redacted>"
    assert redacted["registrationId"] == 42
    assert redacted["me"]["name"] == "Kaya"
    assert redacted["account"]["accountSignatureKey"] == "<bytes:32b>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_handles_sequences() -> None:
    assert redact_for_log([{"private": "k"}, 3]) == [{"private": "<redacted>"}, 3]


def test_redact_for_log_keeps_text_and_bytes_whole_inside_sequences() -> None:
    redacted = redact_for_log(["abc", bytearray(b"xy"), ("nested", b"z")])
    assert redacted == ["abc", "<bytes:2b>", ["nested", "<bytes:1b>"]]
