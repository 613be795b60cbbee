"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# User-facing session messages
# ------------------------------------------------------------------

SCAN_PROMPT = "Hold your iPhone near a WTrack point."
TOO_MANY_TAGS_MESSAGE = "More than 1 point was found. Please present only 1 point."
NO_TAG_MESSAGE = "Unexpected error. Please try again."
CONNECTION_ERROR_MESSAGE = "Connection error. Please try again."
UNCONFIGURED_MESSAGE = "This WTrack point has not been configured. Please contact WTrack."
CORRUPT_MESSAGE = "This WTrack point is corrupt. Please contact WTrack."
UNSUPPORTED_KIND_MESSAGE = "WTrack doesn't support this kind of point."
CANCELLED_MESSAGE = "Check-in cancelled."
TIMEOUT_MESSAGE = "No WTrack point was found. Please try again."

# ------------------------------------------------------------------
# Tag payload layout
# ------------------------------------------------------------------

#: Separator between the display name and reserved fields in a point's text.
PAYLOAD_DELIMITER = "|"

#: NDEF type name format for NFC Forum well-known types.
TNF_WELL_KNOWN = 0x01
#: NDEF record type definition for text records.
RTD_TEXT = b"T"

# Text record status byte: bit 7 selects UTF-16, bits 0-5 hold the language length.
_TEXT_UTF16_FLAG = 0x80
_TEXT_LANG_LENGTH_MASK = 0x3F

DEFAULT_SCAN_TIMEOUT = 60.0
DEFAULT_MQTT_TOPIC = "wtrack/reader"
