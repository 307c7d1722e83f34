"""
incident_feed.py — Polling incident feed with geocoding enrichment.

HOW THE DATA FLOWS
──────────────────
1. refresh() fetches GET /alertas through BackendClient.
2. Every record is turned into an Incident concurrently:
     • place name present → GeocodingAdapter.forward_geocode
     • place name missing → fallback coordinate straight away
   A geocoding Failure (or any per-item error) becomes the fallback
   coordinate for that item only. The batch is never aborted and no
   incident is dropped.
3. asyncio.gather keeps the backend order in the assembled list.
4. The new list REPLACES the previous one. Keys are regenerated on each
   refresh, so two refreshes over identical data give the same visible
   content under different keys. The one exception is an entry injected
   while the refresh was in flight: the fetch may predate it, so it is
   kept until a later refresh (or one listing its backend id) covers it.

The polling loop runs one refresh immediately, then one every
settings.poll_interval_seconds, for as long as the host is up. It does not
look at protection mode; hiding incidents while protection is off is a
render-time decision (see presenter.py).

This class is the only writer of the incident list. Optimistic entries
from the submission flow come in through inject().
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from safewatch.core.config import settings
from safewatch.core.errors import SafeWatchError
from safewatch.core.timeutil import now_local, parse_backend_timestamp, short_time
from safewatch.integrations.backend import BackendClient
from safewatch.integrations.geocoding import GeocodingAdapter
from safewatch.models.backend import IncidentRecord
from safewatch.models.common import Coordinate, Failure, fallback_coordinate
from safewatch.models.incident import NOT_AVAILABLE, Incident, incident_message

logger = logging.getLogger(__name__)


def display_time(raw: Optional[str]) -> str:
    moment = parse_backend_timestamp(raw)
    return short_time(moment) if moment is not None else NOT_AVAILABLE


class IncidentFeedFetcher:
    def __init__(
        self,
        backend: BackendClient,
        geocoder: GeocodingAdapter,
        interval: Optional[float] = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.backend = backend
        self.geocoder = geocoder
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.clock = clock

        self._incidents: list[Incident] = []
        self._task: Optional[asyncio.Task] = None
        # (sequence number, incident) for injected entries not yet superseded by a poll.
        self._pending: list[tuple[int, Incident]] = []
        self._injected_count = 0
        self.last_refresh: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def incidents(self) -> list[Incident]:
        return list(self._incidents)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Enrichment ────────────────────────────────────────────────────────────

    async def _resolve(self, record: IncidentRecord) -> Coordinate:
        if not record.place_name:
            logger.warning("Incident %s has no place name — using fallback coordinate", record.id)
            return fallback_coordinate()

        result = await self.geocoder.forward_geocode(record.place_name)
        if isinstance(result, Failure):
            logger.warning(
                "Geocoding failed for incident %s (%r): %s — using fallback coordinate",
                record.id,
                record.place_name,
                result.message,
            )
            return fallback_coordinate()
        return result

    async def _to_incident(self, record: IncidentRecord) -> Incident:
        try:
            coordinate = await self._resolve(record)
        except Exception as exc:
            # Anything unexpected in one item must not cost the others.
            logger.error("Unexpected error geocoding incident %s: %s", record.id, exc)
            coordinate = fallback_coordinate()

        return Incident(
            backend_id=record.id,
            classification=record.classification,
            message=incident_message(record.gender, record.occurrence_type, record.description),
            place_name=record.place_name,
            coordinate=coordinate,
            time=display_time(record.occurred_at),
            risk=record.risk,
        )
    # ── Public API ────────────────────────────────────────────────────────────

    async def refresh(self) -> list[Incident]:
        """
        Fetch, enrich and replace the incident list.

        Entries injected after this refresh started are carried over, unless
        the fetched list already has their backend id. On a backend failure
        the previous list is kept and returned.
        """
        started_at = self._injected_count
        try:
            records = await self.backend.list_incidents()
        except SafeWatchError as exc:
            logger.error("Failed to fetch incidents: %s", exc.message)
            self.last_error = exc.message
            return self.incidents

        incidents = list(await asyncio.gather(*(self._to_incident(r) for r in records)))
        known_ids = {i.backend_id for i in incidents if i.backend_id is not None}
        self._pending = [
            (seq, incident)
            for seq, incident in self._pending
            if seq > started_at and incident.backend_id not in known_ids
        ]
        self._incidents = incidents + [incident for _, incident in self._pending]
        self.last_refresh = self.clock()
        self.last_error = None
        logger.info("Incident feed refreshed: %d incidents", len(self._incidents))
        return self.incidents

    def inject(self, incident: Incident) -> None:
        """Append a locally created incident ahead of the next poll."""
        self._injected_count += 1
        self._pending.append((self._injected_count, incident))
        self._incidents = [*self._incidents, incident]

    async def _poll(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as exc:
                logger.exception("Incident refresh crashed: %s", exc)
                self.last_error = str(exc)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling: one refresh now, then every ``interval`` seconds."""
        if self.running:
            return
        logger.info("Starting incident polling every %ss", self.interval)
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Cancel the polling loop and wait until it has actually stopped."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Incident polling stopped")
