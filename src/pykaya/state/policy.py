"""Disconnect classification policy.

Every disconnect lands in exactly one bucket. The checks run in priority
order: an invalid session beats a restart request, which beats
everything else. There is no backoff and no retry cap.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pykaya._constants import LONG_RESTART_DELAY, SHORT_RESTART_DELAY
from pykaya.models.events import DisconnectInfo, DisconnectReason

_REINITIALIZE_REASONS: frozenset[DisconnectReason] = frozenset(
    {DisconnectReason.BAD_SESSION, DisconnectReason.LOGGED_OUT}
)
_RESTART_REASONS: frozenset[DisconnectReason] = frozenset(
    {DisconnectReason.RESTART_REQUIRED, DisconnectReason.CONNECTION_CLOSED}
)


class RestartBucket(StrEnum):
    REINITIALIZING = "reinitializing"
    RESTARTING = "restarting"
    RETRY_WAITING = "retry-waiting"


@dataclass(frozen=True)
class RestartDecision:
    """What to do after a disconnect."""

    bucket: RestartBucket
    delay: float
    reason: DisconnectReason = DisconnectReason.UNKNOWN

    @property
    def destroy_credentials(self) -> bool:
        return self.bucket is RestartBucket.REINITIALIZING


def classify_disconnect(reason: DisconnectReason) -> RestartBucket:
    if reason in _REINITIALIZE_REASONS:
        return RestartBucket.REINITIALIZING
    if reason in _RESTART_REASONS:
        return RestartBucket.RESTARTING
    return RestartBucket.RETRY_WAITING


def decide_restart(
    info: DisconnectInfo | None,
    *,
    short_delay: float = SHORT_RESTART_DELAY,
    long_delay: float = LONG_RESTART_DELAY,
) -> RestartDecision:
    """Map a disconnect (or its absence) to a bucket and restart delay."""
    reason = info.code if info is not None else DisconnectReason.UNKNOWN
    bucket = classify_disconnect(reason)
    delay = long_delay if bucket is RestartBucket.RETRY_WAITING else short_delay
    return RestartDecision(bucket=bucket, delay=delay, reason=reason)
