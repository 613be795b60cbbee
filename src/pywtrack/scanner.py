"""Scan session state machine.

One :class:`ScanSession` drives a single scan attempt::

    idle -> scanning -> awaiting_connection -> awaiting_payload -> completed
                 \\               \\                    \\
                  +---------------+--------------------+--> aborted

Detection results are posted into the session's inbox by the reader
(from any thread); connection and NDEF reads are awaited on the reader.
Once a payload has been decoded, normalization and the store append run
without yielding, which makes the append the commit point: a session can
be cancelled up to it and never after.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pywtrack.config import WTrackConfig
from pywtrack.exceptions import (
    ConnectionFailureError,
    NoTagDetectedError,
    ScanCancelledError,
    ScanError,
    ScanTimeoutError,
    TooManyTagsError,
    UnconfiguredPointError,
    UnsupportedPointKindError,
    WTrackError,
)
from pywtrack.ingestion.apply import record_check_in
from pywtrack.ingestion.decode import decode_tag_payload, first_record
from pywtrack.location import LocationProvider, resolve_location_hint
from pywtrack.models.event import CheckInEvent, Coordinate, _utcnow
from pywtrack.models.ndef import SUPPORTED_TAG_KINDS, DetectedTag, NdefMessage
from pywtrack.readers import TagReader
from pywtrack.state.views import checked_in_message

_logger = logging.getLogger(__name__)


class ScanState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    AWAITING_CONNECTION = "awaiting_connection"
    AWAITING_PAYLOAD = "awaiting_payload"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.SCANNING}),
    ScanState.SCANNING: frozenset({ScanState.AWAITING_CONNECTION, ScanState.ABORTED}),
    ScanState.AWAITING_CONNECTION: frozenset({ScanState.AWAITING_PAYLOAD, ScanState.ABORTED}),
    ScanState.AWAITING_PAYLOAD: frozenset({ScanState.COMPLETED, ScanState.ABORTED}),
    ScanState.COMPLETED: frozenset(),
    ScanState.ABORTED: frozenset(),
}


@dataclass(frozen=True)
class TagsDetected:
    """The reader found one or more tags."""

    tags: tuple[DetectedTag, ...]


@dataclass(frozen=True)
class SessionInvalidated:
    """The reader session ended on its own (user cancel, hardware timeout)."""

    reason: str


@dataclass(frozen=True)
class ScanOutcome:
    """How a scan attempt ended.

    ``event`` is set only for completed scans, ``error`` only for
    aborted ones.  ``message`` is the text the reader session was
    invalidated with.
    """

    state: ScanState
    event: CheckInEvent | None = None
    error: ScanError | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == ScanState.COMPLETED


class ScanSession:
    """A single-use scan attempt bound to a reader and a store."""

    def __init__(
        self,
        reader: TagReader,
        *,
        store_append: Callable[[CheckInEvent], None],
        config: WTrackConfig | None = None,
        location_provider: LocationProvider | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_state_change: Callable[[ScanState], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._reader = reader
        self._store_append = store_append
        self._config = config or WTrackConfig()
        self._location_provider = location_provider
        self._clock = clock
        self._on_state_change = on_state_change
        self._logger = logger or _logger
        self._state = ScanState.IDLE
        self._inbox: asyncio.Queue[TagsDetected | SessionInvalidated] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_finished(self) -> bool:
        return self._state in (ScanState.COMPLETED, ScanState.ABORTED)

    # ------------------------------------------------------------------
    # Inbox (safe to call from reader threads)
    # ------------------------------------------------------------------

    def post_detection(self, tags: tuple[DetectedTag, ...] | list[DetectedTag]) -> None:
        """Deliver a detection result from the reader."""
        self._post(TagsDetected(tags=tuple(tags)))

    def post_invalidation(self, reason: str) -> None:
        """Deliver a reader-side session end."""
        self._post(SessionInvalidated(reason=reason))

    def _post(self, message: TagsDetected | SessionInvalidated) -> None:
        loop = self._loop
        if loop is None or self._on_loop_thread(loop):
            self._inbox.put_nowait(message)
        else:
            loop.call_soon_threadsafe(self._inbox.put_nowait, message)

    @staticmethod
    def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, target: ScanState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise WTrackError(f"Invalid scan transition {self._state} -> {target}")
        self._logger.debug("Scan state %s -> %s", self._state, target)
        self._state = target
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(target)
        except Exception:
            self._logger.warning("Scan state callback failed for %s", target, exc_info=True)

    async def run(self) -> ScanOutcome:
        """Run the attempt to completion.

        Scan errors end the attempt as ``aborted`` and are reported on
        the outcome.  Cancelling the task running this coroutine aborts
        the session and re-raises :class:`asyncio.CancelledError`.
        """
        self._loop = asyncio.get_running_loop()
        self._transition(ScanState.SCANNING)
        location_task: asyncio.Task[Coordinate | None] | None = None
        try:
            self._reader.begin(self, self._config.messages.prompt)
            tags = await self._await_detection()

            location_task = self._request_location()
            tag = self._single_tag(tags)

            self._transition(ScanState.AWAITING_CONNECTION)
            await self._connect(tag)
            if tag.kind not in SUPPORTED_TAG_KINDS:
                raise UnsupportedPointKindError(f"Unsupported tag kind: {tag.kind}")

            self._transition(ScanState.AWAITING_PAYLOAD)
            message = await self._read(tag)
            candidate = decode_tag_payload(first_record(message))

            if location_task is not None:
                location_hint = await location_task
            else:
                location_hint = self._location_snapshot()

            # Commit point: nothing below may await.
            event = record_check_in(
                self._store_append,
                candidate.display_name,
                location_hint,
                clock=self._clock,
            )
            self._transition(ScanState.COMPLETED)
            alert = checked_in_message(event, self._config.tzinfo)
            self._invalidate_reader(alert_message=alert)
            self._logger.debug("Scan completed id=%s name=%s", event.id, event.friendly_name)
            return ScanOutcome(state=ScanState.COMPLETED, event=event, message=alert)
        except ScanError as exc:
            return self._abort(exc)
        except asyncio.CancelledError:
            if not self.is_finished:
                self._abort(ScanCancelledError("Scan task cancelled"))
            raise
        except Exception:
            if not self.is_finished:
                self._abort(NoTagDetectedError("Reader failure"))
            raise
        finally:
            if location_task is not None and not location_task.done():
                location_task.cancel()

    def _abort(self, error: ScanError) -> ScanOutcome:
        message = self._config.messages.user_message_for(error)
        self._logger.debug("Scan aborted in state %s: %s", self._state, error)
        self._transition(ScanState.ABORTED)
        self._invalidate_reader(error_message=message)
        return ScanOutcome(state=ScanState.ABORTED, error=error, message=message)

    def _invalidate_reader(self, *, alert_message: str | None = None, error_message: str | None = None) -> None:
        try:
            self._reader.invalidate(alert_message=alert_message, error_message=error_message)
        except Exception:
            self._logger.warning("Reader invalidation failed", exc_info=True)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _await_detection(self) -> tuple[DetectedTag, ...]:
        try:
            message = await asyncio.wait_for(self._inbox.get(), timeout=self._config.scan_timeout)
        except TimeoutError as exc:
            raise ScanTimeoutError(f"No tag detected within {self._config.scan_timeout:.0f}s") from exc
        if isinstance(message, SessionInvalidated):
            raise ScanCancelledError(f"Reader session invalidated: {message.reason}")
        return message.tags

    def _request_location(self) -> asyncio.Task[Coordinate | None] | None:
        """Ask for a fresh fix; returns a waiter task when configured to wait for one."""
        provider = self._location_provider
        if provider is None:
            return None
        try:
            provider.request_location()
        except Exception:
            self._logger.warning("Location request failed", exc_info=True)
        if self._config.location_fix_timeout <= 0:
            return None
        return asyncio.create_task(resolve_location_hint(provider, self._config.location_fix_timeout))

    def _location_snapshot(self) -> Coordinate | None:
        if self._location_provider is None:
            return None
        return self._location_provider.last_location

    @staticmethod
    def _single_tag(tags: tuple[DetectedTag, ...]) -> DetectedTag:
        if len(tags) > 1:
            raise TooManyTagsError(f"{len(tags)} tags detected")
        if not tags:
            raise NoTagDetectedError("Detection reported no tags")
        return tags[0]

    async def _connect(self, tag: DetectedTag) -> None:
        if not tag.connectable:
            raise ConnectionFailureError(f"Reader could not connect to tag {tag.identifier}")
        try:
            await self._reader.connect(tag)
        except ScanError:
            raise
        except Exception as exc:
            raise ConnectionFailureError(f"Connecting to tag {tag.identifier} failed: {exc}") from exc

    async def _read(self, tag: DetectedTag) -> NdefMessage | None:
        try:
            return await self._reader.read_ndef(tag)
        except ScanError:
            raise
        except Exception as exc:
            raise UnconfiguredPointError(f"Reading NDEF from tag {tag.identifier} failed: {exc}") from exc
