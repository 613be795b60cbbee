"""Map display point model."""

from __future__ import annotations

from pywtrack.models._base import WTrackBaseModel
from pywtrack.models.event import CheckInEvent


class MapCheckInPoint(WTrackBaseModel):
    """A geotagged check-in prepared for a map annotation."""

    event: CheckInEvent
    title: str
    latitude: float
    longitude: float
