from __future__ import annotations

import pytest

from pykaya.models.events import DisconnectInfo, DisconnectReason
from pykaya.state.policy import RestartBucket, classify_disconnect, decide_restart


class TestDisconnectReason:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (401, DisconnectReason.LOGGED_OUT),
            ("401", DisconnectReason.LOGGED_OUT),
            ("loggedOut", DisconnectReason.LOGGED_OUT),
            ("badSession", DisconnectReason.BAD_SESSION),
            ("restartRequired", DisconnectReason.RESTART_REQUIRED),
            ("connectionClosed", DisconnectReason.CONNECTION_CLOSED),
            ("timedOut", DisconnectReason.CONNECTION_LOST),
            ("multideviceMismatch", DisconnectReason.MULTIDEVICE_MISMATCH),
        ],
    )
    def test_known_values(self, value: int | str, expected: DisconnectReason) -> None:
        assert DisconnectReason.from_reason(value) is expected

    @pytest.mark.parametrize("value", [None, 999, "ECONNRESET", "", True])
    def test_unknown_values(self, value: object) -> None:
        assert DisconnectReason.from_reason(value) is DisconnectReason.UNKNOWN  # type: ignore[arg-type]


def test_classification_priority_buckets() -> None:
    assert classify_disconnect(DisconnectReason.BAD_SESSION) is RestartBucket.REINITIALIZING
    assert classify_disconnect(DisconnectReason.LOGGED_OUT) is RestartBucket.REINITIALIZING
    assert classify_disconnect(DisconnectReason.RESTART_REQUIRED) is RestartBucket.RESTARTING
    assert classify_disconnect(DisconnectReason.CONNECTION_CLOSED) is RestartBucket.RESTARTING
    assert classify_disconnect(DisconnectReason.CONNECTION_REPLACED) is RestartBucket.RETRY_WAITING
    assert classify_disconnect(DisconnectReason.UNKNOWN) is RestartBucket.RETRY_WAITING


def test_status_code_wins_over_symbolic_reason() -> None:
    info = DisconnectInfo(status_code=401, reason="restartRequired")
    decision = decide_restart(info)
    assert decision.bucket is RestartBucket.REINITIALIZING
    assert decision.destroy_credentials


def test_unmapped_status_code_falls_back_to_reason() -> None:
    info = DisconnectInfo(status_code=499, reason="restartRequired")
    assert decide_restart(info).bucket is RestartBucket.RESTARTING


def test_missing_info_waits_long() -> None:
    decision = decide_restart(None, short_delay=1.0, long_delay=7.5)
    assert decision.bucket is RestartBucket.RETRY_WAITING
    assert decision.delay == 7.5
    assert not decision.destroy_credentials


def test_short_delay_applies_to_recoverable_buckets() -> None:
    assert decide_restart(DisconnectInfo(reason="loggedOut"), short_delay=0.5).delay == 0.5
    assert decide_restart(DisconnectInfo(status_code=515), short_delay=0.5).delay == 0.5
