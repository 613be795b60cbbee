"""Tests for the scan session state machine."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from pywtrack.config import ScanMessages, WTrackConfig
from pywtrack.exceptions import (
    ConnectionFailureError,
    CorruptPayloadError,
    NoTagDetectedError,
    ScanCancelledError,
    ScanTimeoutError,
    TooManyTagsError,
    UnconfiguredPointError,
    UnsupportedPointKindError,
    WTrackError,
)
from pywtrack.location import CachedLocationProvider, StaticLocationProvider
from pywtrack.models.event import Coordinate
from pywtrack.models.ndef import NdefRecord, TagKind
from pywtrack.readers import SimulatedTagReader, point_tag
from pywtrack.scanner import ScanSession, ScanState
from pywtrack.state.store import CheckInStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, 9, 5, tzinfo=UTC)


def _session(
    reader: SimulatedTagReader,
    store: CheckInStore,
    *,
    config: WTrackConfig | None = None,
    location_provider: StaticLocationProvider | CachedLocationProvider | None = None,
    states: list[ScanState] | None = None,
) -> ScanSession:
    return ScanSession(
        reader,
        store_append=store.append,
        config=config,
        location_provider=location_provider,
        clock=_dt,
        on_state_change=states.append if states is not None else None,
    )


@pytest.mark.asyncio
async def test_successful_scan_records_event() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(point_tag(" Park |zone-4"),))
    location = StaticLocationProvider((-33.8, 151.2))
    states: list[ScanState] = []

    outcome = await _session(reader, store, location_provider=location, states=states).run()

    assert outcome.succeeded
    assert outcome.event is not None
    assert outcome.event.friendly_name == "Park"
    assert outcome.event.coordinate == Coordinate(latitude=-33.8, longitude=151.2)
    assert outcome.message == "Checked in to Park at 9:05 AM."
    assert store.all() == (outcome.event,)
    assert location.requests == 1
    assert reader.prompts == ["Hold your iPhone near a WTrack point."]
    assert reader.invalidations == [("Checked in to Park at 9:05 AM.", None)]
    assert states == [
        ScanState.SCANNING,
        ScanState.AWAITING_CONNECTION,
        ScanState.AWAITING_PAYLOAD,
        ScanState.COMPLETED,
    ]


@pytest.mark.asyncio
async def test_two_tags_abort_with_too_many_tags() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(point_tag("A"), point_tag("B", identifier="04ff")))

    session = _session(reader, store)
    outcome = await session.run()

    assert session.state == ScanState.ABORTED
    assert isinstance(outcome.error, TooManyTagsError)
    assert outcome.event is None
    assert len(store) == 0
    assert reader.invalidations == [(None, "More than 1 point was found. Please present only 1 point.")]


@pytest.mark.parametrize("failing_state", [ScanState.SCANNING, ScanState.AWAITING_PAYLOAD, ScanState.COMPLETED])
@pytest.mark.asyncio
async def test_failing_state_callback_does_not_break_scan(failing_state: ScanState) -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(point_tag("Park"),))

    def _on_state(state: ScanState) -> None:
        if state == failing_state:
            raise RuntimeError("listener broken")

    session = ScanSession(reader, store_append=store.append, clock=_dt, on_state_change=_on_state)
    outcome = await session.run()

    assert outcome.succeeded
    assert len(store) == 1
    assert reader.invalidations == [("Checked in to Park at 9:05 AM.", None)]


@pytest.mark.asyncio
async def test_failing_state_callback_on_abort_still_invalidates() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(point_tag("Park", kind=TagKind.FELICA),))

    def _on_state(state: ScanState) -> None:
        if state == ScanState.ABORTED:
            raise RuntimeError("listener broken")

    session = ScanSession(reader, store_append=store.append, clock=_dt, on_state_change=_on_state)
    outcome = await session.run()

    assert session.state == ScanState.ABORTED
    assert isinstance(outcome.error, UnsupportedPointKindError)
    assert reader.invalidations == [(None, "WTrack doesn't support this kind of point.")]
    assert len(store) == 0


@pytest.mark.asyncio
async def test_zero_tags_is_unexpected_error() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=())

    outcome = await _session(reader, store).run()

    assert isinstance(outcome.error, NoTagDetectedError)
    assert outcome.message == "Unexpected error. Please try again."
    assert len(store) == 0


@pytest.mark.parametrize(
    ("tag", "reader_kwargs", "error_cls", "message"),
    [
        (point_tag(None), {}, UnconfiguredPointError, "This WTrack point has not been configured. Please contact WTrack."),
        (point_tag("x", records=()), {}, UnconfiguredPointError, "This WTrack point has not been configured. Please contact WTrack."),
        (point_tag("   "), {}, CorruptPayloadError, "This WTrack point is corrupt. Please contact WTrack."),
        (
            point_tag(None, records=(NdefRecord(tnf=0x04, type=b"example.com:wtrack", payload=b"Park"),)),
            {},
            CorruptPayloadError,
            "This WTrack point is corrupt. Please contact WTrack.",
        ),
        (point_tag("Park", kind=TagKind.FELICA), {}, UnsupportedPointKindError, "WTrack doesn't support this kind of point."),
        (point_tag("Park"), {"connect_error": OSError("rf lost")}, ConnectionFailureError, "Connection error. Please try again."),
        (point_tag("Park"), {"read_error": OSError("read failed")}, UnconfiguredPointError, "This WTrack point has not been configured. Please contact WTrack."),
    ],
)
@pytest.mark.asyncio
async def test_scan_errors_store_nothing(tag, reader_kwargs, error_cls, message) -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(tag,), **reader_kwargs)

    outcome = await _session(reader, store).run()

    assert outcome.state == ScanState.ABORTED
    assert isinstance(outcome.error, error_cls)
    assert outcome.message == message
    assert reader.invalidations == [(None, message)]
    assert len(store) == 0


@pytest.mark.asyncio
async def test_unreachable_tag_is_connection_failure() -> None:
    store = CheckInStore()
    tag = point_tag("Park").model_copy(update={"connectable": False})
    reader = SimulatedTagReader(auto_present=(tag,))

    outcome = await _session(reader, store).run()

    assert isinstance(outcome.error, ConnectionFailureError)


@pytest.mark.asyncio
async def test_configured_messages_are_used() -> None:
    store = CheckInStore()
    config = WTrackConfig(messages=ScanMessages(prompt="Tap a point", too_many_tags="One at a time"))
    reader = SimulatedTagReader(auto_present=(point_tag("A"), point_tag("B")))

    outcome = await _session(reader, store, config=config).run()

    assert reader.prompts == ["Tap a point"]
    assert outcome.message == "One at a time"


@pytest.mark.asyncio
async def test_timeout_without_detection() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader()

    outcome = await _session(reader, store, config=WTrackConfig(scan_timeout=0.05)).run()

    assert isinstance(outcome.error, ScanTimeoutError)
    assert len(store) == 0


@pytest.mark.asyncio
async def test_reader_dismissal_aborts() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader()
    session = _session(reader, store)

    task = asyncio.create_task(session.run())
    await asyncio.sleep(0)
    reader.dismiss("User cancelled")
    outcome = await task

    assert isinstance(outcome.error, ScanCancelledError)
    assert session.state == ScanState.ABORTED
    assert len(store) == 0


@pytest.mark.asyncio
async def test_detection_posted_later() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader()
    session = _session(reader, store)

    task = asyncio.create_task(session.run())
    await asyncio.sleep(0)
    assert session.state == ScanState.SCANNING
    reader.present(point_tag("Gym"))
    outcome = await task

    assert outcome.event is not None
    assert outcome.event.friendly_name == "Gym"


@pytest.mark.asyncio
async def test_detection_posted_from_other_thread() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader()
    session = _session(reader, store)

    task = asyncio.create_task(session.run())
    await asyncio.sleep(0)
    await asyncio.to_thread(session.post_detection, [point_tag("Gym")])
    outcome = await task

    assert outcome.succeeded


@pytest.mark.asyncio
async def test_task_cancellation_aborts_and_reraises() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader()
    session = _session(reader, store)

    task = asyncio.create_task(session.run())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.state == ScanState.ABORTED
    assert reader.invalidations == [(None, "Check-in cancelled.")]
    assert len(store) == 0


@pytest.mark.asyncio
async def test_session_is_single_use() -> None:
    store = CheckInStore()
    reader = SimulatedTagReader(auto_present=(point_tag("Gym"),))
    session = _session(reader, store)
    await session.run()

    with pytest.raises(WTrackError):
        await session.run()
    assert len(store) == 1


# ------------------------------------------------------------------
# Location race
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stale_location_accepted_by_default() -> None:
    store = CheckInStore()
    provider = CachedLocationProvider()
    reader = SimulatedTagReader(auto_present=(point_tag("Gym"),))

    outcome = await _session(reader, store, location_provider=provider).run()
    provider.update((1.0, 2.0))

    assert outcome.event is not None
    assert outcome.event.coordinate is None


@pytest.mark.asyncio
async def test_waits_for_fresh_fix_when_configured() -> None:
    store = CheckInStore()
    requested: list[bool] = []
    provider = CachedLocationProvider(requester=lambda: requested.append(True))
    provider.update((5.0, 5.0))
    reader = SimulatedTagReader(auto_present=(point_tag("Gym"),))
    config = WTrackConfig(location_fix_timeout=1.0)

    task = asyncio.create_task(_session(reader, store, config=config, location_provider=provider).run())
    for _ in range(5):
        await asyncio.sleep(0)
    provider.update((1.0, 2.0))
    outcome = await task

    assert requested == [True]
    assert outcome.event is not None
    assert outcome.event.coordinate == Coordinate(latitude=1.0, longitude=2.0)


@pytest.mark.asyncio
async def test_fix_wait_falls_back_to_last_known() -> None:
    store = CheckInStore()
    provider = CachedLocationProvider()
    provider.update((5.0, 5.0))
    reader = SimulatedTagReader(auto_present=(point_tag("Gym"),))
    config = WTrackConfig(location_fix_timeout=0.05)

    outcome = await _session(reader, store, config=config, location_provider=provider).run()

    assert outcome.event is not None
    assert outcome.event.coordinate == Coordinate(latitude=5.0, longitude=5.0)
