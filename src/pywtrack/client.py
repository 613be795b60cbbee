"""High-level async client for recording check-ins."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pywtrack._mqtt import ReaderMessage, WTrackMqttRuntime
from pywtrack.config import WTrackConfig
from pywtrack.exceptions import EmptyNameError, WTrackError
from pywtrack.ingestion.apply import record_check_in, record_scanned_message
from pywtrack.location import CachedLocationProvider, LocationProvider
from pywtrack.models.event import CheckInEvent, Coordinate, _utcnow
from pywtrack.models.ndef import NdefMessage
from pywtrack.models.point import MapCheckInPoint
from pywtrack.readers import MqttTagReader, TagReader
from pywtrack.scanner import ScanOutcome, ScanSession, ScanState
from pywtrack.state import views
from pywtrack.state.store import CheckInStore

_logger = logging.getLogger(__name__)


class WTrackClient:
    """Async client that records check-ins from tag scans and manual entry.

    All store writes happen on the loop the client was entered on.
    Location fixes pushed by an MQTT reader update the location provider
    only when it is a :class:`~pywtrack.location.CachedLocationProvider`;
    otherwise they are logged at DEBUG and discarded.

    Usage::

        async with WTrackClient(config, reader=reader) as client:
            outcome = await client.start_scan()
            client.add_manual_check_in("Library")
            for point in client.map_points():
                ...
    """

    def __init__(
        self,
        config: WTrackConfig | None = None,
        *,
        reader: TagReader | None = None,
        location_provider: LocationProvider | None = None,
        store: CheckInStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_check_in: Callable[[CheckInEvent], None] | None = None,
        on_scan_state: Callable[[ScanState], None] | None = None,
    ) -> None:
        self._config = config or WTrackConfig()
        self._reader = reader
        self._location_provider = location_provider
        self._store = store if store is not None else CheckInStore()
        self._clock = clock
        self._on_scan_state = on_scan_state
        self._loop: asyncio.AbstractEventLoop | None = None
        self._mqtt_runtime: WTrackMqttRuntime | None = None
        self._active_scan: ScanSession | None = None
        if on_check_in is not None:
            self._store.subscribe(on_check_in)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> WTrackClient:
        self._loop = asyncio.get_running_loop()
        if self._config.mqtt_enabled:
            await self._start_mqtt()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._stop_mqtt()
        self._loop = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def config(self) -> WTrackConfig:
        return self._config

    @property
    def store(self) -> CheckInStore:
        return self._store

    @property
    def events(self) -> tuple[CheckInEvent, ...]:
        """Recorded check-ins in insertion order."""
        return self._store.all()

    def history(self) -> list[CheckInEvent]:
        """Recorded check-ins, newest first."""
        return views.history(self._store.all())

    def map_points(self) -> list[MapCheckInPoint]:
        """Map annotations for every geotagged check-in."""
        return views.map_points(self._store.all(), self._config.tzinfo)

    def subscribe(self, observer: Callable[[CheckInEvent], None]) -> Callable[[], None]:
        """Call *observer* for every recorded check-in; returns an unsubscribe callable."""
        return self._store.subscribe(observer)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def start_scan(self) -> ScanOutcome:
        """Run one scan attempt on the configured reader."""
        if self._reader is None:
            raise WTrackError("No tag reader configured")
        if self._active_scan is not None and not self._active_scan.is_finished:
            raise WTrackError("A scan is already in progress")

        session = ScanSession(
            self._reader,
            store_append=self._store.append,
            config=self._config,
            location_provider=self._location_provider,
            clock=self._clock,
            on_state_change=self._on_scan_state,
            logger=_logger,
        )
        self._active_scan = session
        try:
            return await session.run()
        finally:
            self._active_scan = None

    def add_manual_check_in(self, name: str | None, *, notes: str | None = None) -> CheckInEvent | None:
        """Record a check-in for a typed place name.

        A blank name is ignored and ``None`` returned, unless
        ``strict_manual_entry`` is set, in which case
        :class:`~pywtrack.exceptions.EmptyNameError` is raised.
        """
        try:
            return record_check_in(
                self._store.append,
                name,
                self._location_snapshot(),
                notes=notes,
                clock=self._clock,
            )
        except EmptyNameError:
            if self._config.strict_manual_entry:
                raise
            _logger.debug("Blank manual check-in ignored")
            return None

    def ingest_message(self, message: NdefMessage | None) -> CheckInEvent:
        """Record a check-in from an NDEF message read outside a scan session.

        Raises the same :class:`~pywtrack.exceptions.ScanError` subclasses a
        scan would abort with.
        """
        return record_scanned_message(
            self._store.append,
            message,
            self._location_snapshot(),
            clock=self._clock,
        )

    def _location_snapshot(self) -> Coordinate | None:
        if self._location_provider is None:
            return None
        return self._location_provider.last_location

    # ------------------------------------------------------------------
    # MQTT reader
    # ------------------------------------------------------------------

    async def _start_mqtt(self) -> None:
        loop = self._loop
        if loop is None:
            raise WTrackError("Client not initialized. Use 'async with WTrackClient(...) as client:'")

        if self._location_provider is None:
            self._location_provider = CachedLocationProvider()

        runtime = WTrackMqttRuntime(
            loop=loop,
            on_message=self._on_reader_message,
            keepalive=self._config.mqtt_keepalive,
            logger=_logger,
        )
        if self._reader is None:
            self._reader = MqttTagReader(
                publish=runtime.publish_status,
                on_location=self._on_location_fix,
                logger=_logger,
            )
        try:
            await loop.run_in_executor(None, runtime.start, self._config)
        except Exception:
            _logger.warning("MQTT reader runtime start failed", exc_info=True)
            return
        self._mqtt_runtime = runtime

    async def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is None or self._loop is None:
            return
        try:
            await self._loop.run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT runtime stop failed", exc_info=True)

    def _on_reader_message(self, message: ReaderMessage) -> None:
        if not isinstance(self._reader, MqttTagReader):
            _logger.debug("Reader message %s discarded, configured reader does not take MQTT input", message.type)
            return
        self._reader.handle_message(message)

    def _on_location_fix(self, coordinate: Coordinate) -> None:
        provider = self._location_provider
        if isinstance(provider, CachedLocationProvider):
            provider.update(coordinate)
            return
        _logger.debug(
            "Location fix lat=%s long=%s discarded, provider %r does not accept pushed fixes",
            coordinate.latitude,
            coordinate.longitude,
            provider,
        )
