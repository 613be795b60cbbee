"""Read-only projections over recorded check-ins.

Nothing here mutates the store; each function returns a new sequence.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, tzinfo

from pywtrack.models.event import CheckInEvent
from pywtrack.models.point import MapCheckInPoint


def format_time(timestamp: datetime, tz: tzinfo = UTC) -> str:
    """Short clock time, e.g. ``"9:05 AM"``."""
    local = timestamp.astimezone(tz)
    return local.strftime("%I:%M %p").lstrip("0")


def history(events: Iterable[CheckInEvent]) -> list[CheckInEvent]:
    """Newest first; events with equal timestamps keep their store order."""
    return sorted(events, key=lambda event: event.timestamp, reverse=True)


def map_point(event: CheckInEvent, tz: tzinfo = UTC) -> MapCheckInPoint:
    """Build the map annotation for a geotagged event."""
    if event.coordinate is None:
        raise ValueError(f"Check-in {event.id} has no coordinate")
    return MapCheckInPoint(
        event=event,
        title=f"{event.friendly_name}, at {format_time(event.timestamp, tz)}",
        latitude=event.coordinate.latitude,
        longitude=event.coordinate.longitude,
    )


def map_points(events: Iterable[CheckInEvent], tz: tzinfo = UTC) -> list[MapCheckInPoint]:
    """Map annotations for every geotagged event, in store order."""
    return [map_point(event, tz) for event in events if event.is_geotagged]


def checked_in_message(event: CheckInEvent, tz: tzinfo = UTC) -> str:
    """Alert shown when a scan has recorded *event*."""
    return f"Checked in to {event.friendly_name} at {format_time(event.timestamp, tz)}."
