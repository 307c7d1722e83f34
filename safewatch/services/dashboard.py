"""
SafetyDashboard — Owns one instance of every controller and wires them.

Ownership of the render state (one writer per field):
  • incidents        — IncidentFeedFetcher (poll refresh + inject)
  • user position    — LocationTracker
  • session risk     — RiskLookupController (reset by LocationTracker)
  • protection flag  — SafetyDashboard itself

Lifecycle:
  start()  — open polling (independent of protection mode)
  stop()   — deactivate protection, stop polling; safe to call twice

The FastAPI lifespan in safewatch.main creates the process-wide instance
through open_dashboard() / close_dashboard(); routes get it via
get_dashboard().
"""

import asyncio
import logging
from typing import Optional

import httpx

from safewatch.core.config import settings
from safewatch.integrations.backend import BackendClient
from safewatch.integrations.geocoding import GeocodingAdapter
from safewatch.models.common import Coordinate, Failure
from safewatch.models.dashboard import MapLayers, RenderState
from safewatch.models.incident import Incident, IncidentReport
from safewatch.services.incident_feed import IncidentFeedFetcher
from safewatch.services.location import DevicePositionFeed, LocationTracker, PositionSource
from safewatch.services.presenter import build_map_layers
from safewatch.services.risk_lookup import RiskLookupController
from safewatch.services.submission import IncidentSubmissionController

logger = logging.getLogger(__name__)


class SafetyDashboard:
    def __init__(
        self,
        backend: BackendClient,
        geocoder: GeocodingAdapter,
        position_source: Optional[PositionSource],
        poll_interval: Optional[float] = None,
        geolocation_timeout: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.geocoder = geocoder
        self.position_source = position_source

        self.feed = IncidentFeedFetcher(backend, geocoder, interval=poll_interval)
        self.risk = RiskLookupController(backend, geocoder)
        self.tracker = LocationTracker(position_source, self.risk, timeout=geolocation_timeout)
        self.submission = IncidentSubmissionController(backend, geocoder)

        self._protection_active = False
        self._protection_lock = asyncio.Lock()

    @property
    def protection_active(self) -> bool:
        return self._protection_active

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        self.feed.start()

    async def stop(self) -> None:
        try:
            await self.set_protection(False)
        finally:
            await self.feed.stop()

    # ── Protection mode ───────────────────────────────────────────────────────

    async def _apply_protection(self, active: bool) -> bool:
        if active == self._protection_active:
            return self._protection_active
        self._protection_active = active
        logger.info("Protection mode %s", "activated" if active else "deactivated")
        if active:
            await self.tracker.activate()
        else:
            await self.tracker.deactivate()
        return self._protection_active

    async def set_protection(self, active: bool) -> bool:
        async with self._protection_lock:
            return await self._apply_protection(active)

    async def toggle_protection(self) -> bool:
        async with self._protection_lock:
            return await self._apply_protection(not self._protection_active)

    # ── Reports ───────────────────────────────────────────────────────────────

    async def submit_report(self, report: IncidentReport | dict) -> Incident | Failure:
        result = await self.submission.submit(report)
        if isinstance(result, Incident):
            self.feed.inject(result)
        return result

    async def upload_image(self, **kwargs) -> bool | Failure:
        return await self.submission.upload_image(**kwargs)

    async def describe_location(self) -> Optional[str]:
        """Address of the current user position, for pre-filling forms."""
        position = self.tracker.position
        if position is None:
            return None
        return await self.geocoder.describe(position)

    # ── Views ─────────────────────────────────────────────────────────────────

    def snapshot(self) -> RenderState:
        return RenderState(
            protection_active=self._protection_active,
            user_position=self.tracker.position if self._protection_active else None,
            incidents=self.feed.incidents,
            session_risk=self.risk.state,
            last_refresh=self.feed.last_refresh,
        )

    def map_layers(self) -> MapLayers:
        return build_map_layers(self.snapshot())

    def push_position(self, coordinate: Coordinate) -> bool:
        """Forward a device fix. Returns False when the host takes no fixes."""
        if not isinstance(self.position_source, DevicePositionFeed):
            return False
        self.position_source.publish(coordinate)
        return True

    def push_position_error(self, reason: str) -> bool:
        if not isinstance(self.position_source, DevicePositionFeed):
            return False
        self.position_source.fail(reason)
        return True


# ── Process-wide instance ─────────────────────────────────────────────────────

class DashboardHolder:
    """
    Holds the shared httpx client and the dashboard.

    A class rather than bare globals so tests can swap .dashboard cleanly.
    """

    client: httpx.AsyncClient | None = None
    dashboard: SafetyDashboard | None = None


dashboard_holder = DashboardHolder()


async def open_dashboard() -> SafetyDashboard:
    """Create the shared client + dashboard and start polling."""
    client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    source = DevicePositionFeed() if settings.location_enabled else None
    dashboard = SafetyDashboard(
        backend=BackendClient(client),
        geocoder=GeocodingAdapter(client),
        position_source=source,
    )
    dashboard_holder.client = client
    dashboard_holder.dashboard = dashboard
    dashboard.start()
    return dashboard


async def close_dashboard() -> None:
    """Stop every background task, then close the shared client."""
    dashboard, client = dashboard_holder.dashboard, dashboard_holder.client
    dashboard_holder.dashboard = None
    dashboard_holder.client = None
    try:
        if dashboard is not None:
            await dashboard.stop()
    finally:
        if client is not None:
            await client.aclose()


def get_dashboard() -> SafetyDashboard | None:
    """
    FastAPI dependency — the running dashboard, or None before startup.

    Usage in a route:
        async def my_route(dashboard = Depends(get_dashboard)):
            ...
    """
    return dashboard_holder.dashboard
