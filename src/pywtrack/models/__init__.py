"""Data models for check-in events and scanned tags."""

from pywtrack.models._base import WTrackBaseModel, WTrackEnum
from pywtrack.models.event import CheckInEvent, Coordinate
from pywtrack.models.ndef import SUPPORTED_TAG_KINDS, DetectedTag, NdefMessage, NdefRecord, TagKind
from pywtrack.models.point import MapCheckInPoint

__all__ = [
    "CheckInEvent",
    "Coordinate",
    "DetectedTag",
    "MapCheckInPoint",
    "NdefMessage",
    "NdefRecord",
    "SUPPORTED_TAG_KINDS",
    "TagKind",
    "WTrackBaseModel",
    "WTrackEnum",
]
