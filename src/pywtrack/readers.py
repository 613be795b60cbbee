"""Tag reader adapters.

A reader is the hardware collaborator of a :class:`~pywtrack.scanner.ScanSession`.
It posts detections into the session it was started for and answers
connect/read requests for the tag it detected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from pywtrack._mqtt import ReaderMessage, ReaderMessageType
from pywtrack.ingestion.ndef import build_text_record
from pywtrack.models.event import Coordinate
from pywtrack.models.ndef import DetectedTag, NdefMessage, NdefRecord, TagKind

if TYPE_CHECKING:
    from pywtrack.scanner import ScanSession

_logger = logging.getLogger(__name__)


class TagReader(Protocol):
    def begin(self, session: ScanSession, prompt: str) -> None:
        """Start polling and deliver detections to *session*."""
        ...

    async def connect(self, tag: DetectedTag) -> None:
        """Open a connection to *tag*; raise on failure."""
        ...

    async def read_ndef(self, tag: DetectedTag) -> NdefMessage | None:
        """Read the NDEF message stored on *tag*."""
        ...

    def invalidate(self, *, alert_message: str | None = None, error_message: str | None = None) -> None:
        """End the reader session, showing one of the messages."""
        ...


def point_tag(
    text: str | None,
    *,
    kind: TagKind = TagKind.MIFARE,
    identifier: str = "04000000000000",
    records: tuple[NdefRecord, ...] | None = None,
) -> DetectedTag:
    """Build a detected tag as a configured point would present itself.

    *text* becomes a text record; ``None`` gives a tag without an NDEF
    message.  Explicit *records* take precedence over *text*.
    """
    if records is not None:
        message: NdefMessage | None = NdefMessage(records=records)
    elif text is None:
        message = None
    else:
        message = NdefMessage(records=(build_text_record(text),))
    return DetectedTag(kind=kind, identifier=identifier, message=message)


class SimulatedTagReader:
    """In-process reader driven by code.

    ``present`` delivers tags to the running session, ``dismiss``
    ends it from the reader side.  Tags queued with ``auto_present``
    are delivered as soon as a session begins.
    """

    def __init__(
        self,
        *,
        auto_present: tuple[DetectedTag, ...] | None = None,
        connect_error: Exception | None = None,
        read_error: Exception | None = None,
    ) -> None:
        self._auto_present = auto_present
        self._connect_error = connect_error
        self._read_error = read_error
        self._session: ScanSession | None = None
        self.prompts: list[str] = []
        self.invalidations: list[tuple[str | None, str | None]] = []

    @property
    def session(self) -> ScanSession | None:
        return self._session

    def begin(self, session: ScanSession, prompt: str) -> None:
        self._session = session
        self.prompts.append(prompt)
        if self._auto_present is not None:
            session.post_detection(self._auto_present)

    def present(self, *tags: DetectedTag) -> None:
        if self._session is None:
            raise RuntimeError("No scan session is active")
        self._session.post_detection(tags)

    def dismiss(self, reason: str = "Session invalidated by user") -> None:
        if self._session is None:
            raise RuntimeError("No scan session is active")
        self._session.post_invalidation(reason)

    async def connect(self, tag: DetectedTag) -> None:
        if self._connect_error is not None:
            raise self._connect_error

    async def read_ndef(self, tag: DetectedTag) -> NdefMessage | None:
        if self._read_error is not None:
            raise self._read_error
        return tag.message

    def invalidate(self, *, alert_message: str | None = None, error_message: str | None = None) -> None:
        self.invalidations.append((alert_message, error_message))
        self._session = None


class MqttTagReader:
    """Reader for networked NFC readers publishing over MQTT.

    The reader firmware reads the NDEF contents together with detection,
    so ``connect`` and ``read_ndef`` only replay what the scan message
    carried.  Messages are fed in by :meth:`handle_message`, which must
    run on the event loop thread; :class:`pywtrack._mqtt.WTrackMqttRuntime`
    takes care of that.  Session results are published back so the
    reader can show them.
    """

    def __init__(
        self,
        *,
        publish: Callable[[dict[str, Any]], None] | None = None,
        on_location: Callable[[Coordinate], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._publish = publish
        self._on_location = on_location
        self._logger = logger or _logger
        self._session: ScanSession | None = None

    @property
    def is_scanning(self) -> bool:
        return self._session is not None

    def handle_message(self, message: ReaderMessage) -> None:
        if message.type == ReaderMessageType.LOCATION:
            if message.coordinate is not None and self._on_location is not None:
                self._on_location(message.coordinate)
            return

        session = self._session
        if session is None:
            self._logger.debug("Reader message %s ignored, no scan session active", message.type)
            return
        if message.type == ReaderMessageType.TAGS:
            session.post_detection(message.tags)
        elif message.type == ReaderMessageType.INVALIDATED:
            session.post_invalidation(message.reason or "Reader session ended")

    def begin(self, session: ScanSession, prompt: str) -> None:
        self._session = session
        self._send({"type": "begin", "prompt": prompt})

    async def connect(self, tag: DetectedTag) -> None:
        if not tag.connectable:
            raise ConnectionError(f"Reader reported tag {tag.identifier} as unreachable")

    async def read_ndef(self, tag: DetectedTag) -> NdefMessage | None:
        return tag.message

    def invalidate(self, *, alert_message: str | None = None, error_message: str | None = None) -> None:
        self._session = None
        if error_message is not None:
            self._send({"type": "result", "ok": False, "message": error_message})
        else:
            self._send({"type": "result", "ok": True, "message": alert_message})

    def _send(self, payload: dict[str, Any]) -> None:
        if self._publish is None:
            return
        try:
            self._publish(payload)
        except Exception:
            self._logger.warning("Publishing reader status failed", exc_info=True)
