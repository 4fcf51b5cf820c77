"""Single-file credential store.

The store is a JSON document ``{"creds": {...}, "keys": {...}}`` at a
fixed path. Byte strings are written in the ``{"type": "Buffer",
"data": "<base64>"}`` form the network layer uses, so the file stays
readable by either side. Writes go to a temp file that replaces the
target atomically; deleting a missing file is a no-op.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pykaya._crypto.keys import init_auth_creds
from pykaya.exceptions import CredentialDeletionError, CredentialPersistenceError
from pykaya.models.auth import AuthState

_logger = logging.getLogger(__name__)


def _buffer_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"type": "Buffer", "data": base64.b64encode(bytes(value)).decode("ascii")}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _buffer_hook(obj: dict[str, Any]) -> Any:
    if obj.get("type") == "Buffer" and len(obj) == 2:
        data = obj.get("data")
        if isinstance(data, str):
            return base64.b64decode(data)
        if isinstance(data, list):
            return bytes(data)
    return obj


def buffer_json_dumps(value: Any) -> str:
    """JSON-encode *value*, writing bytes as Buffer objects."""
    return json.dumps(value, default=_buffer_default, separators=(",", ":"))


def buffer_json_loads(text: str | bytes) -> Any:
    """Inverse of :func:`buffer_json_dumps`."""
    return json.loads(text, object_hook=_buffer_hook)


class AuthStore(Protocol):
    """Structural credential store interface used by the session manager."""

    def load(self) -> AuthState: ...

    def save(self, state: AuthState) -> None: ...

    def apply_delta(self, delta: dict[str, Any]) -> AuthState: ...

    def delete(self) -> bool: ...


class SingleFileAuthStore:
    """Credential store persisted as one JSON file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._state: AuthState | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> AuthState | None:
        """Last loaded or saved state, if any."""
        return self._state

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> AuthState:
        """Load the store, initializing fresh credentials when absent.

        A corrupt file is treated like a missing one: the session will
        have to pair again, which overwrites it.
        """
        try:
            raw = buffer_json_loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            _logger.info("No credential store at %s, initializing new credentials", self._path)
            raw = None
        except (OSError, ValueError):
            _logger.warning("Credential store at %s is unreadable, initializing new credentials", self._path, exc_info=True)
            raw = None

        if isinstance(raw, dict) and isinstance(raw.get("creds"), dict):
            keys = raw.get("keys")
            state = AuthState(creds=raw["creds"], keys=keys if isinstance(keys, dict) else {})
        else:
            state = AuthState(creds=init_auth_creds())
        self._state = state
        return state

    def save(self, state: AuthState) -> None:
        """Write *state* atomically.

        Raises
        ------
        CredentialPersistenceError
            If the file cannot be written.
        """
        try:
            body = buffer_json_dumps({"creds": state.creds, "keys": state.keys})
        except (TypeError, ValueError) as exc:
            raise CredentialPersistenceError(
                f"Credentials are not serializable: {exc}", path=str(self._path)
            ) from exc

        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise CredentialPersistenceError(
                f"Could not write credential store {self._path}: {exc}", path=str(self._path)
            ) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        self._state = state
        _logger.debug("Credential store saved to %s", self._path)

    def apply_delta(self, delta: dict[str, Any]) -> AuthState:
        """Upsert *delta* into the stored credentials and save."""
        current = self._state if self._state is not None else self.load()
        updated = current.merged(delta)
        self.save(updated)
        return updated

    def delete(self) -> bool:
        """Remove the store. Returns ``False`` if there was nothing to delete.

        Raises
        ------
        CredentialDeletionError
            If the file exists but cannot be removed.
        """
        self._state = None
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CredentialDeletionError(
                f"Could not delete credential store {self._path}: {exc}", path=str(self._path)
            ) from exc
        _logger.info("Credential store %s deleted", self._path)
        return True
