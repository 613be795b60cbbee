"""Tag payload decoding.

A configured point stores ``"<display name>|<reserved>|..."`` in the
text of its first NDEF record.  Only the display name is interpreted;
the remaining segments are kept on :class:`DecodedCandidate` so later
fields can be read without changing the decoder contract.
"""

from __future__ import annotations

from pydantic import Field

from pywtrack._constants import PAYLOAD_DELIMITER
from pywtrack.exceptions import CorruptPayloadError, UnconfiguredPointError
from pywtrack.ingestion.ndef import well_known_text_payload
from pywtrack.models._base import WTrackBaseModel
from pywtrack.models.ndef import NdefMessage, NdefRecord


class DecodedCandidate(WTrackBaseModel):
    """The result of decoding a point's payload."""

    display_name: str
    extra_segments: tuple[str, ...] = Field(default=(), description="Uninterpreted reserved fields")


def first_record(message: NdefMessage | None) -> NdefRecord:
    """Return the record a point's payload lives in.

    Raises :class:`UnconfiguredPointError` for a missing or empty message.
    """
    if message is None:
        raise UnconfiguredPointError("Tag has no NDEF message")
    if message.is_empty:
        raise UnconfiguredPointError("Tag NDEF message has no records")
    return message.records[0]


def split_payload(text: str) -> list[str]:
    """Split on the delimiter, dropping empty segments."""
    return [segment for segment in text.split(PAYLOAD_DELIMITER) if segment]


def decode_tag_payload(record: NdefRecord) -> DecodedCandidate:
    """Decode the first record of a scanned message.

    Raises :class:`CorruptPayloadError` when the record has no text
    payload or the text does not start with a usable name.
    """
    text, _language = well_known_text_payload(record)
    if text is None:
        raise CorruptPayloadError("Record has no well-known text payload")

    segments = split_payload(text)
    if not segments:
        raise CorruptPayloadError("Text payload has no segments")

    display_name = segments[0].strip()
    if not display_name:
        raise CorruptPayloadError("Text payload has a blank display name")

    return DecodedCandidate(
        display_name=display_name,
        extra_segments=tuple(segment.strip() for segment in segments[1:]),
    )
