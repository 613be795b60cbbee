"""Tests for NDEF text records and tag payload decoding."""

from __future__ import annotations

import pytest

from pywtrack.exceptions import CorruptPayloadError, UnconfiguredPointError
from pywtrack.ingestion.decode import decode_tag_payload, first_record
from pywtrack.ingestion.ndef import build_text_record, well_known_text_payload
from pywtrack.models.ndef import NdefMessage, NdefRecord

# ------------------------------------------------------------------
# Well-known text payload
# ------------------------------------------------------------------


class TestWellKnownTextPayload:
    def test_utf8_record(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"\x02enLibrary|A1")
        assert well_known_text_payload(record) == ("Library|A1", "en")

    def test_utf16_record(self) -> None:
        record = build_text_record("Café", language="fr", utf16=True)
        assert record.payload[0] & 0x80
        assert well_known_text_payload(record) == ("Café", "fr")

    def test_utf16_without_bom_is_big_endian(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"\x82en" + "Park|A1".encode("utf-16-be"))
        assert well_known_text_payload(record) == ("Park|A1", "en")
        assert decode_tag_payload(record).display_name == "Park"

    @pytest.mark.parametrize("encoding", ["utf-16-le", "utf-16-be"])
    def test_utf16_with_bom(self, encoding: str) -> None:
        bom = "\ufeff".encode(encoding)
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"\x82en" + bom + "Park".encode(encoding))
        assert well_known_text_payload(record) == ("Park", "en")

    def test_uri_record_has_no_text(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"U", payload=b"\x04example.com")
        assert well_known_text_payload(record) == (None, None)

    def test_mime_record_has_no_text(self) -> None:
        record = NdefRecord(tnf=0x02, type=b"text/plain", payload=b"Library")
        assert well_known_text_payload(record) == (None, None)

    def test_language_length_past_end(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"\x05en")
        assert well_known_text_payload(record) == (None, None)

    def test_invalid_utf8(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"\x02en\xff\xfe\xfa")
        assert well_known_text_payload(record) == (None, None)

    def test_empty_payload(self) -> None:
        record = NdefRecord(tnf=0x01, type=b"T", payload=b"")
        assert well_known_text_payload(record) == (None, None)


# ------------------------------------------------------------------
# decode_tag_payload
# ------------------------------------------------------------------


class TestDecodeTagPayload:
    def test_name_before_delimiter(self) -> None:
        candidate = decode_tag_payload(build_text_record("  Central Park |zone-4|v2"))
        assert candidate.display_name == "Central Park"
        assert candidate.extra_segments == ("zone-4", "v2")

    def test_no_delimiter_uses_whole_text(self) -> None:
        candidate = decode_tag_payload(build_text_record("\tLibrary \n"))
        assert candidate.display_name == "Library"
        assert candidate.extra_segments == ()

    def test_leading_delimiters_are_skipped(self) -> None:
        candidate = decode_tag_payload(build_text_record("||Gym|x"))
        assert candidate.display_name == "Gym"

    @pytest.mark.parametrize("text", ["", "   ", "|||", " |x"])
    def test_blank_name_is_corrupt(self, text: str) -> None:
        with pytest.raises(CorruptPayloadError):
            decode_tag_payload(build_text_record(text))

    def test_non_text_record_is_corrupt(self) -> None:
        record = NdefRecord(tnf=0x02, type=b"application/json", payload=b'{"name": "Gym"}')
        with pytest.raises(CorruptPayloadError) as exc_info:
            decode_tag_payload(record)
        assert exc_info.value.user_message == "This WTrack point is corrupt. Please contact WTrack."


class TestFirstRecord:
    def test_missing_message(self) -> None:
        with pytest.raises(UnconfiguredPointError) as exc_info:
            first_record(None)
        assert "not been configured" in exc_info.value.user_message

    def test_empty_message(self) -> None:
        with pytest.raises(UnconfiguredPointError):
            first_record(NdefMessage(records=()))

    def test_returns_first_of_many(self) -> None:
        first = build_text_record("First")
        second = build_text_record("Second")
        assert first_record(NdefMessage(records=(first, second))) == first
