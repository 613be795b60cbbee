"""NFC Forum text record helpers.

A well-known text record (TNF ``0x01``, type ``"T"``) carries a status
byte, an IANA language code and the text itself::

    +--------+-----------------+----------------------+
    | status | language (n B)  | text (UTF-8/UTF-16)  |
    +--------+-----------------+----------------------+

Bit 7 of the status byte selects UTF-16, bits 0-5 give ``n``.  UTF-16 text
without a byte-order mark is big-endian.
"""

from __future__ import annotations

import codecs

from pywtrack._constants import _TEXT_LANG_LENGTH_MASK, _TEXT_UTF16_FLAG, RTD_TEXT, TNF_WELL_KNOWN
from pywtrack.models.ndef import NdefRecord


def is_text_record(record: NdefRecord) -> bool:
    return record.tnf == TNF_WELL_KNOWN and record.type == RTD_TEXT


def well_known_text_payload(record: NdefRecord) -> tuple[str | None, str | None]:
    """Return ``(text, language)`` for a text record.

    Returns ``(None, None)`` when the record is not a well-known text
    record or its payload cannot be decoded.
    """
    if not is_text_record(record):
        return None, None

    payload = record.payload
    if not payload:
        return None, None

    status = payload[0]
    lang_length = status & _TEXT_LANG_LENGTH_MASK
    if 1 + lang_length > len(payload):
        return None, None

    try:
        language = payload[1 : 1 + lang_length].decode("ascii")
    except UnicodeDecodeError:
        return None, None

    body = payload[1 + lang_length :]
    if not status & _TEXT_UTF16_FLAG:
        encoding = "utf-8"
    elif body[:2] in (codecs.BOM_UTF16_BE, codecs.BOM_UTF16_LE):
        encoding = "utf-16"
    else:
        # No byte-order mark means big-endian.
        encoding = "utf-16-be"
    try:
        text = body.decode(encoding)
    except UnicodeDecodeError:
        return None, None
    return text, language or None


def build_text_record(text: str, language: str = "en", *, utf16: bool = False) -> NdefRecord:
    """Encode *text* as a well-known text record."""
    lang = language.encode("ascii")
    if len(lang) > _TEXT_LANG_LENGTH_MASK:
        raise ValueError(f"language code too long: {language!r}")
    status = len(lang)
    if utf16:
        status |= _TEXT_UTF16_FLAG
        body = text.encode("utf-16-be")
    else:
        body = text.encode("utf-8")
    return NdefRecord(tnf=TNF_WELL_KNOWN, type=RTD_TEXT, payload=bytes([status]) + lang + body)
