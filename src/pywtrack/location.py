"""Location providers.

A provider is injected into the client instead of a process-wide
location singleton.  The scan path fires :meth:`request_location` as
soon as a tag is detected and later reads :attr:`last_location` as a
point-in-time snapshot, so a fix that arrives after the event is
recorded is not attached to it.  Providers that implement
``wait_for_fix`` let the client wait a bounded time for a fresh fix
instead (see ``WTrackConfig.location_fix_timeout``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from pywtrack.models.event import Coordinate

_logger = logging.getLogger(__name__)


@runtime_checkable
class LocationProvider(Protocol):
    """Anything that can report the last known position."""

    @property
    def last_location(self) -> Coordinate | None: ...

    def request_location(self) -> None: ...


class StaticLocationProvider:
    """Provider with a fixed answer, for fixed installations and tests."""

    def __init__(self, coordinate: Coordinate | tuple[float, float] | None = None) -> None:
        self._coordinate = Coordinate.coerce(coordinate)
        self.requests = 0

    @property
    def last_location(self) -> Coordinate | None:
        return self._coordinate

    def request_location(self) -> None:
        self.requests += 1


class CachedLocationProvider:
    """Caches fixes pushed by a platform location source.

    ``requester`` is called (fire-and-forget) on :meth:`request_location`
    to ask the platform for a new fix; the platform answers later by
    calling :meth:`update`.  :meth:`update` and :meth:`wait_for_fix` must
    run on the same event loop thread.
    """

    def __init__(
        self,
        requester: Callable[[], Any] | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._requester = requester
        self._logger = logger or _logger
        self._last: Coordinate | None = None
        self._fix_serial = 0
        self._requested_serial = 0
        self._waiters: list[asyncio.Future[Coordinate]] = []

    @property
    def last_location(self) -> Coordinate | None:
        return self._last

    @property
    def has_fresh_fix(self) -> bool:
        """Whether a fix arrived after the most recent request."""
        return self._fix_serial > self._requested_serial

    def request_location(self) -> None:
        self._requested_serial = self._fix_serial
        if self._requester is None:
            return
        try:
            self._requester()
        except Exception:
            self._logger.warning("Location request failed", exc_info=True)

    def update(self, coordinate: Coordinate | tuple[float, float]) -> None:
        """Record a new fix and wake anyone waiting for one."""
        fix = Coordinate.coerce(coordinate)
        if fix is None:
            return
        self._last = fix
        self._fix_serial += 1
        self._logger.debug("Location fix received lat=%s long=%s", fix.latitude, fix.longitude)
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(fix)

    async def wait_for_fix(self, timeout: float) -> Coordinate | None:
        """Wait up to *timeout* seconds for a fix newer than the last request.

        Falls back to the last known position when none arrives in time.
        """
        if self.has_fresh_fix or timeout <= 0:
            return self._last
        waiter: asyncio.Future[Coordinate] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout)
        except TimeoutError:
            self._logger.debug("No fresh location fix within %.1fs, using last known", timeout)
            return self._last
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)


async def resolve_location_hint(provider: LocationProvider | None, timeout: float = 0.0) -> Coordinate | None:
    """Return the coordinate to attach to a check-in being recorded now."""
    if provider is None:
        return None
    wait_for_fix = getattr(provider, "wait_for_fix", None)
    if timeout > 0 and wait_for_fix is not None:
        result: Coordinate | None = await wait_for_fix(timeout)
        return result
    return provider.last_location
