"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - The dashboard front-end to check host connectivity

Returns status + incident backend reachability (as seen by the last
poll) so callers can distinguish "host down" from "host up but backend
unreachable".
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from safewatch.core.config import settings
from safewatch.services.dashboard import SafetyDashboard, get_dashboard

logger = logging.getLogger(__name__)
router = APIRouter()

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the host process is alive
    version: str
    backend: str  # "reachable" | "unreachable" | "unknown"
    polling: bool
    last_refresh: Optional[datetime] = None
    environment: str


@router.get("", response_model=HealthResponse, summary="Host health check")
async def health_check(dashboard: SafetyDashboard | None = Depends(get_dashboard)) -> HealthResponse:
    """
    Returns the liveness status of the host and what the incident feed
    last saw of the backend.

    The host is healthy (HTTP 200) even when the backend is unreachable.
    """
    backend_status = "unknown"
    polling = False
    last_refresh = None
    if dashboard is not None:
        feed = dashboard.feed
        polling = feed.running
        last_refresh = feed.last_refresh
        if feed.last_error is not None:
            backend_status = "unreachable"
        elif feed.last_refresh is not None:
            backend_status = "reachable"

    return HealthResponse(
        status="ok",
        version=VERSION,
        backend=backend_status,
        polling=polling,
        last_refresh=last_refresh,
        environment=settings.environment,
    )
