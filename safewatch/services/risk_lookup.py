"""
risk_lookup.py — One risk query per protection session.

lookup_once(coordinate)
  1. If this session already has a risk value, do nothing (logged).
  2. Reverse-geocode the coordinate to an administrative region
     (settings.fallback_region when that fails).
  3. Take the current local time as "HH:MM".
  4. GET /risco-bairro with (region, time) and parse ``risco``.
  5. On a usable value: store SessionRiskState and set the one-shot flag.

Only a successful, parseable answer consumes the session's permission.
A malformed value or a network error leaves the flag unset so the next
call may try again.

Calls are serialised with a lock: two overlapping calls in one session
cannot both reach the risk service after the first one succeeds.
reset() is called by the location tracker exactly when protection mode
goes from active to inactive.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from safewatch.core.config import settings
from safewatch.core.errors import SafeWatchError
from safewatch.core.timeutil import now_local, short_time
from safewatch.integrations.backend import BackendClient
from safewatch.integrations.geocoding import GeocodingAdapter
from safewatch.models.common import Coordinate, Failure
from safewatch.models.risk import SessionRiskState

logger = logging.getLogger(__name__)


class RiskLookupController:
    def __init__(
        self,
        backend: BackendClient,
        geocoder: GeocodingAdapter,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.backend = backend
        self.geocoder = geocoder
        self.clock = clock
        self._lock = asyncio.Lock()
        self._state: Optional[SessionRiskState] = None

    @property
    def fetched_once(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> Optional[SessionRiskState]:
        return self._state

    async def _region_for(self, coordinate: Coordinate) -> str:
        region = await self.geocoder.reverse_geocode(coordinate)
        if isinstance(region, Failure):
            logger.warning(
                "Reverse geocoding failed (%s) — using fallback region %r",
                region.message,
                settings.fallback_region,
            )
            return settings.fallback_region
        return region

    async def lookup_once(self, coordinate: Coordinate) -> float | Failure | None:
        """
        Returns the stored risk value on success, a Failure when the query
        could not produce one, or None when the session already has a value.
        """
        async with self._lock:
            if self.fetched_once:
                logger.info("Risk already fetched this session — ignoring lookup request")
                return None

            region = await self._region_for(coordinate)
            time_of_day = short_time(self.clock())
            logger.info("Requesting risk for region=%r at %s", region, time_of_day)

            try:
                response = await self.backend.fetch_risk(region, time_of_day)
            except SafeWatchError as exc:
                logger.warning("Risk lookup failed: %s", exc.message)
                return Failure.from_error(exc)

            self._state = SessionRiskState(
                coordinate=coordinate,
                risk=response.risk,
                region=region,
                time_of_day=time_of_day,
            )
            logger.info("Session risk set to %.2f for %r", response.risk, region)
            return response.risk

    def reset(self) -> None:
        """Forget this session's risk so the next activation may query again."""
        if self._state is not None:
            logger.info("Clearing session risk state")
        self._state = None
