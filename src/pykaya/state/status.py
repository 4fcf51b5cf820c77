"""Observable connection status and pairing code snapshot.

The session manager is the only writer. Readers (the status page, tests)
take immutable snapshots or register a listener; neither path can block
the writer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pykaya._constants import STATUS_PAIRING_CODE_ISSUED, STATUS_STARTING
from pykaya.models.status import StatusSnapshot

_logger = logging.getLogger(__name__)

StatusListener = Callable[[StatusSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StatusState:
    """Single-writer holder for the latest :class:`StatusSnapshot`."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._snapshot = StatusSnapshot(status=STATUS_STARTING, updated_at=clock())
        self._listeners: list[StatusListener] = []

    @property
    def status(self) -> str:
        return self._snapshot.status

    def snapshot(self) -> StatusSnapshot:
        """Latest snapshot. Safe to hold on to: snapshots are immutable."""
        return self._snapshot

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def set_status(self, status: str) -> None:
        self._publish(self._snapshot.model_copy(update={"status": status, "updated_at": self._clock()}))

    def set_pairing_image(self, image: str) -> None:
        """Replace the live pairing image and mark the status as issued."""
        now = self._clock()
        self._publish(
            self._snapshot.model_copy(
                update={
                    "status": STATUS_PAIRING_CODE_ISSUED,
                    "pairing_image": image,
                    "pairing_timestamp": now,
                    "updated_at": now,
                }
            )
        )

    def clear_pairing_image(self) -> None:
        if self._snapshot.pairing_image is None and self._snapshot.pairing_timestamp is None:
            return
        self._publish(
            self._snapshot.model_copy(
                update={"pairing_image": None, "pairing_timestamp": None, "updated_at": self._clock()}
            )
        )

    def _publish(self, snapshot: StatusSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Status listener failed", exc_info=True)
