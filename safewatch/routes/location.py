"""
location.py — Device position push routes.

The browser owns the geolocation API; it forwards every fix (and every
geolocation error) here so the LocationTracker can consume them.

Routes:
  POST /api/v1/location           — a new fix {lat, lng, accuracy_m?}
  POST /api/v1/location/error     — a device-side failure {reason}
  GET  /api/v1/location/describe  — address of the current position
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from safewatch.models.common import Coordinate
from safewatch.models.dashboard import PositionError, PositionFix
from safewatch.routes.deps import require_dashboard
from safewatch.services.dashboard import SafetyDashboard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/location", tags=["location"])


@router.post("", status_code=202)
async def push_position(fix: PositionFix, dashboard: SafetyDashboard = Depends(require_dashboard)):
    if not dashboard.push_position(Coordinate(lat=fix.lat, lng=fix.lng)):
        raise HTTPException(status_code=409, detail="Location capability disabled")
    return {"accepted": True}


@router.post("/error", status_code=202)
async def push_position_error(error: PositionError, dashboard: SafetyDashboard = Depends(require_dashboard)):
    logger.info("Device reported location error: %s", error.reason)
    if not dashboard.push_position_error(error.reason):
        raise HTTPException(status_code=409, detail="Location capability disabled")
    return {"accepted": True}


@router.get("/describe")
async def describe_position(dashboard: SafetyDashboard = Depends(require_dashboard)):
    address = await dashboard.describe_location()
    if address is None:
        raise HTTPException(status_code=404, detail="No current position")
    return {"address": address}
