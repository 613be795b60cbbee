"""Event normalization."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from pywtrack.exceptions import EmptyNameError
from pywtrack.models.event import CheckInEvent, Coordinate, _utcnow


def normalize_check_in(
    display_name: str | None,
    location_hint: Coordinate | tuple[float, float] | None = None,
    *,
    notes: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> CheckInEvent:
    """Build a validated check-in event.

    Parameters
    ----------
    display_name
        Place name as entered or decoded.  Surrounding whitespace is
        removed; ``None`` is treated as empty.
    location_hint
        Last known position, if any.  Attached as-is.
    notes
        Optional free text.
    clock
        Source of the creation time.

    Raises
    ------
    EmptyNameError
        When *display_name* is empty after trimming.
    """
    name = (display_name or "").strip()
    if not name:
        raise EmptyNameError("Check-in name is empty")

    event_kwargs: dict[str, Any] = {
        "friendly_name": name,
        "timestamp": clock(),
        "notes": notes,
    }
    coordinate = Coordinate.coerce(location_hint)
    if coordinate is not None:
        event_kwargs["coordinate"] = coordinate
    return CheckInEvent(**event_kwargs)
