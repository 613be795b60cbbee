"""NDEF message and detected-tag models."""

from __future__ import annotations

from pydantic import Field

from pywtrack.models._base import WTrackBaseModel, WTrackEnum


class TagKind(WTrackEnum):
    """Tag technology reported by a reader."""

    MIFARE = "mifare"
    ISO7816 = "iso7816"
    ISO15693 = "iso15693"
    FELICA = "felica"
    UNKNOWN = "unknown"


#: Tag kinds a WTrack point can be written to.
SUPPORTED_TAG_KINDS: frozenset[TagKind] = frozenset({TagKind.MIFARE})


class NdefRecord(WTrackBaseModel):
    """A single NDEF record as read from a tag."""

    tnf: int = Field(..., ge=0, le=7, description="Type name format")
    type: bytes = b""
    identifier: bytes = b""
    payload: bytes = b""


class NdefMessage(WTrackBaseModel):
    """An NDEF message: an ordered sequence of records."""

    records: tuple[NdefRecord, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.records


class DetectedTag(WTrackBaseModel):
    """A tag found by the reader during polling.

    ``message`` is set by readers that read the NDEF contents together
    with detection (networked readers).  ``connectable`` is ``False``
    when such a reader already failed to talk to the tag.
    """

    kind: TagKind = TagKind.UNKNOWN
    identifier: str = ""
    message: NdefMessage | None = None
    connectable: bool = True
