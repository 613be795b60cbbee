"""Ingestion layer.

Turns raw scanner output and manual text entry into validated
:class:`~pywtrack.models.event.CheckInEvent` records.  The store is
never imported here; :mod:`pywtrack.ingestion.apply` commits through an
append callable supplied by the caller.
"""

from pywtrack.ingestion.decode import DecodedCandidate, decode_tag_payload, first_record
from pywtrack.ingestion.ndef import build_text_record, well_known_text_payload
from pywtrack.ingestion.normalize import normalize_check_in

__all__ = [
    "DecodedCandidate",
    "build_text_record",
    "decode_tag_payload",
    "first_record",
    "normalize_check_in",
    "well_known_text_payload",
]
