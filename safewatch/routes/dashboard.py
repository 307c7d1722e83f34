"""
dashboard.py — Render state and protection mode routes.

Routes:
  GET  /api/v1/state       — merged RenderState (alert panel + status)
  GET  /api/v1/map         — MapLayers for the map component
  POST /api/v1/protection  — turn protection mode on or off
  POST /api/v1/protection/toggle

The front-end polls /state and /map; neither route triggers any
upstream call.
"""

import logging

from fastapi import APIRouter, Depends

from safewatch.models.dashboard import MapLayers, ProtectionRequest, RenderState
from safewatch.routes.deps import require_dashboard
from safewatch.services.dashboard import SafetyDashboard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["dashboard"])


@router.get("/state", response_model=RenderState)
async def get_state(dashboard: SafetyDashboard = Depends(require_dashboard)):
    return dashboard.snapshot()


@router.get("/map", response_model=MapLayers)
async def get_map(dashboard: SafetyDashboard = Depends(require_dashboard)):
    """Markers and circles only while protection is on; an overlay otherwise."""
    return dashboard.map_layers()


@router.post("/protection", response_model=RenderState)
async def set_protection(payload: ProtectionRequest, dashboard: SafetyDashboard = Depends(require_dashboard)):
    await dashboard.set_protection(payload.active)
    return dashboard.snapshot()


@router.post("/protection/toggle", response_model=RenderState)
async def toggle_protection(dashboard: SafetyDashboard = Depends(require_dashboard)):
    await dashboard.toggle_protection()
    return dashboard.snapshot()
