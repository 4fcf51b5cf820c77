"""Status snapshot handed to readers of the session state."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pykaya._constants import STATUS_STARTING


class StatusSnapshot(BaseModel):
    """Immutable view of the connection status and pairing code.

    Parameters
    ----------
    status : str
        Current connection status label.
    pairing_image : str or None
        PNG data URI of the latest pairing challenge, if one is live.
    pairing_timestamp : datetime or None
        When the pairing image was generated.
    updated_at : datetime
        When this snapshot was produced.
    """

    model_config = ConfigDict(frozen=True)

    status: str = STATUS_STARTING
    pairing_image: str | None = None
    pairing_timestamp: datetime | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_pairing_image(self) -> bool:
        return self.pairing_image is not None

    def health_payload(self) -> dict[str, Any]:
        """JSON body served by the health probe."""
        return {
            "status": self.status,
            "qrLastUpdated": self.pairing_timestamp.isoformat() if self.pairing_timestamp else None,
        }
