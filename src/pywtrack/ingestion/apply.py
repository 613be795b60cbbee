"""Ingestion application helpers.

This module centralizes the commit step shared by the scan and manual
entry paths:

- decode the scanned message (scan path only)
- normalize into a :class:`~pywtrack.models.event.CheckInEvent`
- append the event to a store

Everything here is synchronous.  Once a payload has arrived, decode,
normalize and append run to completion without yielding, so two
ingestion sequences can never interleave their effects on the store.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from pywtrack.ingestion.decode import decode_tag_payload, first_record
from pywtrack.ingestion.normalize import normalize_check_in
from pywtrack.models.event import CheckInEvent, Coordinate, _utcnow
from pywtrack.models.ndef import NdefMessage


def record_check_in(
    store_append: Callable[[CheckInEvent], None],
    display_name: str | None,
    location_hint: Coordinate | None = None,
    *,
    notes: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> CheckInEvent:
    """Normalize and append a check-in, returning the stored event."""
    event = normalize_check_in(display_name, location_hint, notes=notes, clock=clock)
    store_append(event)
    return event


def record_scanned_message(
    store_append: Callable[[CheckInEvent], None],
    message: NdefMessage | None,
    location_hint: Coordinate | None = None,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> CheckInEvent:
    """Decode a scanned message and append the resulting check-in.

    Raises the decoder's :class:`~pywtrack.exceptions.ScanError`
    subclasses before anything is appended.
    """
    candidate = decode_tag_payload(first_record(message))
    return record_check_in(store_append, candidate.display_name, location_hint, clock=clock)
