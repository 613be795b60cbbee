"""Base model and enum for pywtrack records.

Every record inherits from :class:`WTrackBaseModel` which provides:

* ``frozen=True`` so events and records cannot be mutated once built.
* ``alias_generator=to_camel`` so payloads can be dumped with the
  camelCase keys reader firmware and app clients use
  (``model_dump(by_alias=True)``) while fields stay snake_case.

Enums inherit from :class:`WTrackEnum` which adds a ``_missing_`` hook
returning ``UNKNOWN`` for any value without a mapped member.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WTrackEnum(enum.StrEnum):
    """Base for string enums reported by readers.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> WTrackEnum:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        if hasattr(cls, "UNKNOWN"):
            unknown: WTrackEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class WTrackBaseModel(BaseModel):
    """Base for immutable pywtrack records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
