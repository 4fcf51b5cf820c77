"""Protocol version model."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProtocolVersion(BaseModel):
    """Three-part protocol version advertised when opening a socket."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)

    @classmethod
    def from_sequence(cls, value: Sequence[Any]) -> ProtocolVersion:
        """Build from ``[major, minor, patch]`` as found in the version document.

        Raises :class:`ValueError` when *value* is not three integers.
        """
        if isinstance(value, (str, bytes)) or len(value) != 3:
            raise ValueError(f"version must have exactly three parts, got {value!r}")
        major, minor, patch = (int(part) for part in value)
        return cls(major=major, minor=minor, patch=patch)

    def as_list(self) -> list[int]:
        return [self.major, self.minor, self.patch]

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class VersionResolution(BaseModel):
    """Outcome of a version lookup.

    ``is_latest`` is ``False`` when the fallback version was used; ``error``
    then holds the reason the lookup failed.
    """

    model_config = ConfigDict(frozen=True)

    version: ProtocolVersion
    is_latest: bool
    error: str | None = None
