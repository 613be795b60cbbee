"""Check-in event model."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from pywtrack.models._base import WTrackBaseModel


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Coordinate(WTrackBaseModel):
    """A geographic position.

    Both halves are always present; a coordinate is all-or-nothing.
    """

    latitude: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)

    @classmethod
    def coerce(cls, value: Any) -> Coordinate | None:
        """Build a coordinate from a ``Coordinate``, a ``(lat, long)`` pair or a mapping.

        ``None`` passes through unchanged.
        """
        if value is None or isinstance(value, Coordinate):
            return value
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            if len(value) != 2:
                raise ValueError(f"coordinate needs exactly latitude and longitude, got {len(value)} values")
            return cls(latitude=value[0], longitude=value[1])
        return cls.model_validate(value)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class CheckInEvent(WTrackBaseModel):
    """A record of being present at a place.

    Parameters
    ----------
    id : UUID
        Process-unique identifier generated at creation.
    friendly_name : str
        Display name of the place, trimmed and never empty.
    timestamp : datetime
        UTC creation time.
    notes : str or None
        Optional free text.
    coordinate : Coordinate or None
        Where the check-in happened, when a location was known.
    """

    id: UUID = Field(default_factory=uuid4)
    friendly_name: str
    timestamp: datetime = Field(default_factory=_utcnow)
    notes: str | None = None
    coordinate: Coordinate | None = None

    @field_validator("friendly_name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("friendly_name must be non-empty")
        return name

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("notes")
    @classmethod
    def _blank_notes_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        return text if text else None

    @property
    def is_geotagged(self) -> bool:
        return self.coordinate is not None

    @property
    def latitude(self) -> float | None:
        return self.coordinate.latitude if self.coordinate is not None else None

    @property
    def longitude(self) -> float | None:
        return self.coordinate.longitude if self.coordinate is not None else None
