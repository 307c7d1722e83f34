"""
dashboard.py — Read-only views handed to the front-end.

RenderState is the merged snapshot of everything the controllers own.
MapLayers is what the map library draws; it is derived from a RenderState
by ``safewatch.services.presenter`` and never written back.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from safewatch.models.common import Coordinate
from safewatch.models.incident import Classification, Incident
from safewatch.models.risk import RiskBand, SessionRiskState


class RenderState(BaseModel):
    protection_active: bool
    user_position: Optional[Coordinate] = None
    incidents: list[Incident] = Field(default_factory=list)
    session_risk: Optional[SessionRiskState] = None
    last_refresh: Optional[datetime] = None


class RiskCircle(BaseModel):
    center: Coordinate
    radius_m: float
    risk: float
    color: str
    band: RiskBand


class IncidentMarker(BaseModel):
    key: str
    position: Coordinate
    classification: Classification
    icon: str
    title: str          # popup headline
    message: str
    subtitle: str       # "<place> - <time>"
    risk_circle: Optional[RiskCircle] = None


class MapLayers(BaseModel):
    center: Coordinate
    zoom: int = 13
    active: bool
    user_marker: Optional[Coordinate] = None
    incident_markers: list[IncidentMarker] = Field(default_factory=list)
    session_risk_circle: Optional[RiskCircle] = None
    overlay_message: Optional[str] = None   # shown instead of markers when offline


class ProtectionRequest(BaseModel):
    active: bool


class PositionFix(BaseModel):
    """A device fix pushed by the front-end."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy_m: Optional[float] = Field(default=None, ge=0)


class PositionError(BaseModel):
    """Device-side failure (permission denied, position unavailable, timeout)."""

    reason: str = Field(default="unavailable", max_length=200)
