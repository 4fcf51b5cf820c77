"""Base model and enum for link protocol payloads.

Every payload model inherits from :class:`KayaBaseModel` which provides
``alias_generator=to_camel`` so the camelCase keys used on the wire map
to snake_case fields.

Enums inherit from :class:`KayaEnum` which adds an ``UNKNOWN`` member
at ``-1`` and a ``_missing_`` hook that returns ``UNKNOWN`` for any
value without a mapped member.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class KayaEnum(enum.IntEnum):
    """Base for protocol enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> KayaEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: KayaEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class KayaBaseModel(BaseModel):
    """Base for payloads received from the network layer."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
