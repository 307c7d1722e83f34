"""
location.py — Device position tracking for protection mode.

LocationTracker is a two-state machine:

  Idle ──activate()──▶ Tracking
    • if the session has no risk value yet, one single-shot fix is
      requested; the fix (or the fallback coordinate when the device
      fails or times out) becomes the user position and is forwarded to
      RiskLookupController.lookup_once
    • a continuous watch starts; every update overwrites the user
      position and is NEVER forwarded to the risk lookup

  Tracking ──deactivate()──▶ Idle
    • both tasks are cancelled, the position is cleared and the session
      risk state is reset, then the cancelled tasks are awaited

Transitions are serialised by a lock, so an activate() that races a
deactivate() always starts from a fully reset Idle state.

Without any position capability (source is None) the tracker never
tracks, but activation still performs one risk lookup per session with
the fallback coordinate.

Device positions reach the host through a PositionSource. The browser
front-end pushes its geolocation fixes to DevicePositionFeed via the
/api/v1/location route.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import AsyncIterator, Iterator, Optional

from safewatch.core.config import settings
from safewatch.core.errors import LocationUnavailable
from safewatch.models.common import Coordinate, fallback_coordinate
from safewatch.services.risk_lookup import RiskLookupController

logger = logging.getLogger(__name__)


class PositionSource(ABC):
    """
    Where device positions come from.

    Both methods must honour ``timeout`` and raise LocationUnavailable on
    denial, unavailability or timeout. Fixes are never served from a cache:
    a call only returns positions that arrive after it started.
    """

    @abstractmethod
    async def current_position(self, timeout: float) -> Coordinate:
        ...

    @abstractmethod
    def watch(self, timeout: float) -> AsyncIterator[Coordinate]:
        ...


class DevicePositionFeed(PositionSource):
    """PositionSource fed by fixes pushed from the front-end."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue] = set()

    @contextmanager
    def _subscribe(self) -> Iterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, coordinate: Coordinate) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(coordinate)

    def fail(self, reason: str) -> None:
        """Report a device-side error (permission denied, unavailable...)."""
        for queue in list(self._subscribers):
            queue.put_nowait(LocationUnavailable(reason))

    @staticmethod
    async def _next(queue: asyncio.Queue, timeout: float) -> Coordinate:
        try:
            item = await asyncio.wait_for(queue.get(), timeout)
        except asyncio.TimeoutError:
            raise LocationUnavailable(f"no position fix within {timeout:g}s")
        if isinstance(item, LocationUnavailable):
            raise item
        return item

    async def current_position(self, timeout: float) -> Coordinate:
        with self._subscribe() as queue:
            return await self._next(queue, timeout)

    async def watch(self, timeout: float) -> AsyncIterator[Coordinate]:
        with self._subscribe() as queue:
            while True:
                yield await self._next(queue, timeout)


class TrackerState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class LocationTracker:
    def __init__(
        self,
        source: Optional[PositionSource],
        risk: RiskLookupController,
        timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        self.source = source
        self.risk = risk
        self.timeout = timeout if timeout is not None else settings.geolocation_timeout_seconds
        self.retry_delay = retry_delay if retry_delay is not None else settings.location_retry_seconds

        self._active = False
        self._position: Optional[Coordinate] = None
        self._initial_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._transition_lock = asyncio.Lock()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def state(self) -> TrackerState:
        if self._active and self.source is not None:
            return TrackerState.TRACKING
        return TrackerState.IDLE

    @property
    def position(self) -> Optional[Coordinate]:
        return self._position

    # ── Tasks ─────────────────────────────────────────────────────────────────

    async def _single_fix(self) -> Coordinate:
        try:
            return await asyncio.wait_for(self.source.current_position(self.timeout), self.timeout)
        except asyncio.TimeoutError:
            raise LocationUnavailable(f"no position fix within {self.timeout:g}s")

    async def _initial_fix(self) -> None:
        try:
            coordinate = await self._single_fix()
        except LocationUnavailable as exc:
            logger.warning("Initial position unavailable (%s) — using fallback coordinate", exc.message)
            coordinate = fallback_coordinate()
        self._position = coordinate
        await self.risk.lookup_once(coordinate)

    async def _fallback_lookup(self) -> None:
        await self.risk.lookup_once(fallback_coordinate())

    async def _watch(self) -> None:
        while True:
            try:
                async for coordinate in self.source.watch(self.timeout):
                    self._position = coordinate
            except LocationUnavailable as exc:
                logger.warning("Position watch failed (%s) — showing fallback coordinate", exc.message)
                self._position = fallback_coordinate()
            await asyncio.sleep(self.retry_delay)

    # ── Transitions ───────────────────────────────────────────────────────────

    async def activate(self) -> None:
        async with self._transition_lock:
            if self._active:
                return
            self._active = True

            if self.source is None:
                logger.warning("No location capability — risk lookup will use the fallback coordinate")
                if not self.risk.fetched_once:
                    self._initial_task = asyncio.create_task(self._fallback_lookup())
                return

            logger.info("Location tracking started")
            if not self.risk.fetched_once:
                self._initial_task = asyncio.create_task(self._initial_fix())
            self._watch_task = asyncio.create_task(self._watch())

    async def deactivate(self) -> None:
        async with self._transition_lock:
            if not self._active:
                return
            self._active = False

            tasks = [t for t in (self._initial_task, self._watch_task) if t is not None]
            self._initial_task = self._watch_task = None
            for task in tasks:
                task.cancel()
            # Cleared before the first await: nothing may observe the old session.
            self._position = None
            self.risk.reset()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Location tracking stopped")

    async def settle(self) -> None:
        """Wait for the pending single-shot fix (and its risk lookup), if any."""
        task = self._initial_task
        if task is not None and not task.done():
            await asyncio.wait({task})
