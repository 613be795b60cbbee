"""Custom exception hierarchy for pywtrack."""

from __future__ import annotations

from pywtrack import _constants


class WTrackError(Exception):
    """Base exception for all pywtrack errors."""


class WTrackConfigError(WTrackError):
    """Invalid or missing configuration."""


class ScanError(WTrackError):
    """A scan attempt failed before an event was recorded.

    ``user_message`` is the human-readable text the scan session is
    invalidated with.  Scan errors are terminal for the attempt and are
    never retried automatically.
    """

    default_user_message: str = _constants.NO_TAG_MESSAGE

    def __init__(self, message: str = "", *, user_message: str | None = None) -> None:
        self.user_message = user_message if user_message is not None else self.default_user_message
        super().__init__(message or self.user_message)


class TooManyTagsError(ScanError):
    """More than one tag was presented in a single scan."""

    default_user_message = _constants.TOO_MANY_TAGS_MESSAGE


class NoTagDetectedError(ScanError):
    """The reader reported a detection without any tag."""

    default_user_message = _constants.NO_TAG_MESSAGE


class ConnectionFailureError(ScanError):
    """Connecting to the detected tag failed."""

    default_user_message = _constants.CONNECTION_ERROR_MESSAGE


class UnconfiguredPointError(ScanError):
    """The tag carries no NDEF message, or an empty one."""

    default_user_message = _constants.UNCONFIGURED_MESSAGE


class CorruptPayloadError(ScanError):
    """The first record has no usable well-known text payload."""

    default_user_message = _constants.CORRUPT_MESSAGE


class UnsupportedPointKindError(ScanError):
    """The detected tag technology is not a supported point kind."""

    default_user_message = _constants.UNSUPPORTED_KIND_MESSAGE


class ScanCancelledError(ScanError):
    """The reader session was invalidated before a tag was read."""

    default_user_message = _constants.CANCELLED_MESSAGE


class ScanTimeoutError(ScanError):
    """No tag was detected within the configured scan timeout."""

    default_user_message = _constants.TIMEOUT_MESSAGE


class CheckInValidationError(WTrackError):
    """Input could not be normalized into a check-in event."""


class EmptyNameError(CheckInValidationError):
    """The display name is empty after trimming."""


class ReaderPayloadError(WTrackError):
    """A networked reader published a message that could not be decoded."""
