"""pywtrack - Check-in recording from NFC point scans and manual entry."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pywtrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pywtrack.client import WTrackClient
from pywtrack.config import ScanMessages, WTrackConfig
from pywtrack.exceptions import (
    CheckInValidationError,
    ConnectionFailureError,
    CorruptPayloadError,
    EmptyNameError,
    NoTagDetectedError,
    ReaderPayloadError,
    ScanCancelledError,
    ScanError,
    ScanTimeoutError,
    TooManyTagsError,
    UnconfiguredPointError,
    UnsupportedPointKindError,
    WTrackConfigError,
    WTrackError,
)
from pywtrack.ingestion import DecodedCandidate, decode_tag_payload, normalize_check_in
from pywtrack.location import CachedLocationProvider, LocationProvider, StaticLocationProvider
from pywtrack.models import (
    CheckInEvent,
    Coordinate,
    DetectedTag,
    MapCheckInPoint,
    NdefMessage,
    NdefRecord,
    TagKind,
)
from pywtrack.readers import MqttTagReader, SimulatedTagReader, TagReader, point_tag
from pywtrack.scanner import ScanOutcome, ScanSession, ScanState
from pywtrack.state import CheckInStore

__all__ = [
    "__version__",
    "CachedLocationProvider",
    "CheckInEvent",
    "CheckInStore",
    "CheckInValidationError",
    "ConnectionFailureError",
    "Coordinate",
    "CorruptPayloadError",
    "DecodedCandidate",
    "DetectedTag",
    "EmptyNameError",
    "LocationProvider",
    "MapCheckInPoint",
    "MqttTagReader",
    "NdefMessage",
    "NdefRecord",
    "NoTagDetectedError",
    "ReaderPayloadError",
    "ScanCancelledError",
    "ScanError",
    "ScanMessages",
    "ScanOutcome",
    "ScanSession",
    "ScanState",
    "ScanTimeoutError",
    "SimulatedTagReader",
    "StaticLocationProvider",
    "TagKind",
    "TagReader",
    "TooManyTagsError",
    "UnconfiguredPointError",
    "UnsupportedPointKindError",
    "WTrackClient",
    "WTrackConfig",
    "WTrackConfigError",
    "WTrackError",
    "decode_tag_payload",
    "normalize_check_in",
    "point_tag",
]
