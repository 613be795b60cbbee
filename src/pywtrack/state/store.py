"""Append-only in-memory check-in store.

This is the only component that holds recorded events.  Writes are
expected from a single execution context (the client's event loop);
the lock additionally serializes any stray cross-thread call so that
appends and observer notifications always happen in arrival order.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator

from pywtrack.models.event import CheckInEvent

_logger = logging.getLogger(__name__)

Observer = Callable[[CheckInEvent], None]


class CheckInStore:
    """Ordered, append-only collection of check-in events.

    Observers are called synchronously on every append, in the order
    they subscribed.  An observer that raises is logged and skipped; it
    cannot undo the append.
    """

    def __init__(self, events: Iterable[CheckInEvent] | None = None) -> None:
        self._lock = threading.RLock()
        self._events: list[CheckInEvent] = list(events) if events is not None else []
        self._observers: list[Observer] = []

    def append(self, event: CheckInEvent) -> None:
        """Add *event* to the end of the store and notify observers."""
        with self._lock:
            self._events.append(event)
            _logger.debug("Check-in appended id=%s name=%s total=%d", event.id, event.friendly_name, len(self._events))
            for observer in list(self._observers):
                try:
                    observer(event)
                except Exception:
                    _logger.warning("Check-in observer %r failed", observer, exc_info=True)

    def all(self) -> tuple[CheckInEvent, ...]:
        """Snapshot of every event in insertion order."""
        with self._lock:
            return tuple(self._events)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register *observer* and return a callable that removes it."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[CheckInEvent]:
        return iter(self.all())
