"""Lifecycle events emitted by the link socket.

The network layer speaks in three event classes: credential updates,
connection updates (which carry pairing challenges, state changes and
disconnects) and inbound messages. Each wire event is parsed into one of
the models below before it reaches the session manager.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import Field, model_validator

from pykaya._constants import CONNECTION_CLOSE
from pykaya.models._base import KayaBaseModel, KayaEnum

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class DisconnectReason(KayaEnum):
    """Reason codes the network reports when a session ends."""

    UNKNOWN = -1
    LOGGED_OUT = 401
    FORBIDDEN = 403
    CONNECTION_LOST = 408
    TIMED_OUT = 408
    MULTIDEVICE_MISMATCH = 411
    CONNECTION_CLOSED = 428
    CONNECTION_REPLACED = 440
    BAD_SESSION = 500
    UNAVAILABLE_SERVICE = 503
    RESTART_REQUIRED = 515

    @classmethod
    def from_reason(cls, value: int | str | None) -> DisconnectReason:
        """Resolve a numeric code or a symbolic name such as ``"loggedOut"``.

        Anything unrecognised (including ``None`` and transport errors like
        ``"ECONNRESET"``) resolves to :attr:`UNKNOWN`.
        """
        if value is None or isinstance(value, bool):
            return cls.UNKNOWN
        if isinstance(value, int):
            return cls(value)
        text = value.strip()
        if text.isdigit():
            return cls(int(text))
        name = _CAMEL_BOUNDARY.sub("_", text).upper()
        member = cls.__members__.get(name)
        return member if member is not None else cls.UNKNOWN


class DisconnectInfo(KayaBaseModel):
    """Why the last session ended.

    Accepts either the flat form (``statusCode``/``reason``) or the nested
    ``{"error": {"output": {"statusCode": ..., "payload": {...}}}}`` shape
    produced by the network layer.
    """

    status_code: int | None = None
    reason: str | None = None
    message: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_error(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "error" not in values:
            return values
        error = values.get("error")
        if not isinstance(error, dict):
            return {"reason": str(error) if error is not None else None}
        output = error.get("output") if isinstance(error.get("output"), dict) else {}
        status_code = output.get("statusCode") or error.get("statusCode")
        payload = output.get("payload") if isinstance(output.get("payload"), dict) else {}
        return {
            "status_code": status_code,
            "reason": error.get("reason") or error.get("code"),
            "message": str(error.get("message") or payload.get("message") or ""),
            "payload": payload,
        }

    @property
    def code(self) -> DisconnectReason:
        """Mapped reason; the numeric status code wins over the symbolic reason."""
        if self.status_code is not None:
            resolved = DisconnectReason.from_reason(self.status_code)
            if resolved is not DisconnectReason.UNKNOWN:
                return resolved
        return DisconnectReason.from_reason(self.reason)

    def describe(self) -> str:
        parts = [self.code.name]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.reason:
            parts.append(f"reason={self.reason}")
        if self.message:
            parts.append(self.message)
        return " ".join(parts)


class CredentialsUpdate(KayaBaseModel):
    """New or rotated key material to persist."""

    creds: dict[str, Any] = Field(default_factory=dict)


class ConnectionUpdate(KayaBaseModel):
    """Connection lifecycle update.

    Any combination of fields may be present in a single update; they are
    handled in the order pairing challenge, connection state, disconnect.
    """

    connection: str | None = None
    qr: str | None = None
    last_disconnect: DisconnectInfo | None = None
    is_new_login: bool | None = None

    @property
    def is_disconnect(self) -> bool:
        return self.last_disconnect is not None or self.connection == CONNECTION_CLOSE


class MessagesUpsert(KayaBaseModel):
    """Inbound messages delivered to the linked device."""

    messages: list[dict[str, Any]] = Field(default_factory=list)
    type: str | None = None


SocketEvent = CredentialsUpdate | ConnectionUpdate | MessagesUpsert

_EVENT_MODELS: dict[str, type[KayaBaseModel]] = {
    "creds.update": CredentialsUpdate,
    "connection.update": ConnectionUpdate,
    "messages.upsert": MessagesUpsert,
}


def parse_socket_event(name: str, data: Any) -> SocketEvent | None:
    """Parse a wire event into its model, or ``None`` for unhandled names.

    ``creds.update`` carries the credential delta as its whole ``data``
    object.

    Raises
    ------
    pydantic.ValidationError
        If *data* does not match the event's shape.
    """
    model = _EVENT_MODELS.get(name)
    if model is None:
        return None
    if model is CredentialsUpdate:
        return CredentialsUpdate(creds=dict(data or {}))
    event: SocketEvent = model.model_validate(data or {})  # type: ignore[assignment]
    return event
