"""Credential store model."""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthState(BaseModel):
    """Persisted key material and metadata for one linked-device session.

    The contents are owned by the network layer. pykaya only loads,
    merges, saves and deletes them.

    Parameters
    ----------
    creds : dict
        Long-lived credentials (identity keys, registration id, account
        metadata once paired).
    keys : dict
        Signal key store entries (pre-keys, sessions, sender keys).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    creds: dict[str, Any] = Field(default_factory=dict)
    keys: dict[str, Any] = Field(default_factory=dict)

    def merged(self, delta: dict[str, Any]) -> AuthState:
        """Return a copy with *delta* upserted into ``creds``.

        Applying the same delta twice yields an equal state.
        """
        creds = copy.deepcopy(self.creds)
        creds.update(copy.deepcopy(delta))
        return AuthState(creds=creds, keys=copy.deepcopy(self.keys))
