"""
presenter.py — Derive map layers from a RenderState.

Pure functions, no I/O. The map library on the front-end draws exactly
what build_map_layers() returns:

  • user marker          — only while protection mode is on
  • incident markers     — only while protection mode is on; each one
                           carries a risk circle when the backend sent a
                           per-incident risk value
  • session risk circle  — the one-shot risk lookup around the user
  • overlay message      — replaces the markers while protection is off

The incident list itself is fetched regardless of protection mode; the
suppression happens here, at render time.
"""

from typing import Optional

from safewatch.models.common import Coordinate, fallback_coordinate
from safewatch.models.dashboard import IncidentMarker, MapLayers, RenderState, RiskCircle
from safewatch.models.incident import Classification, Incident
from safewatch.models.risk import risk_band

OFFLINE_MESSAGE = "Monitoramento Offline - Alertas não visíveis"

INCIDENT_CIRCLE_RADIUS_M = 300.0
SESSION_CIRCLE_RADIUS_M = 500.0

_ICON_DIR = "/leaflet/images"

MARKER_ICONS: dict[Classification, str] = {
    Classification.CRITICAL: f"{_ICON_DIR}/marker-icon-red.png",
    Classification.DANGER:   f"{_ICON_DIR}/marker-icon-orange.png",
    Classification.WARNING:  f"{_ICON_DIR}/marker-icon-yellow.png",
    Classification.LOW:      f"{_ICON_DIR}/marker-icon-green.png",
    Classification.INFO:     f"{_ICON_DIR}/marker-icon-blue.png",
}

POPUP_TITLES: dict[Classification, str] = {
    Classification.CRITICAL: "ALERTA DE PERIGO IMINENTE!",
    Classification.DANGER:   "ALERTA DE PERIGO!",
    Classification.WARNING:  "ATENÇÃO!",
    Classification.LOW:      "ALERTA DE BAIXO RISCO!",
    Classification.INFO:     "NOVO ALERTA (Informativo)",
}

# Legend colours (red / orange / yellow / green / blue).
SEVERITY_COLORS: dict[Classification, str] = {
    Classification.CRITICAL: "#ef4444",
    Classification.DANGER:   "#f97316",
    Classification.WARNING:  "#eab308",
    Classification.LOW:      "#22c55e",
    Classification.INFO:     "#3b82f6",
}


def risk_circle(center: Coordinate, risk: float, radius_m: float) -> RiskCircle:
    band = risk_band(risk)
    return RiskCircle(
        center=center,
        radius_m=radius_m,
        risk=risk,
        color=SEVERITY_COLORS[band.classification],
        band=band,
    )


def incident_marker(incident: Incident) -> IncidentMarker:
    circle: Optional[RiskCircle] = None
    if incident.risk is not None:
        circle = risk_circle(incident.coordinate, incident.risk, INCIDENT_CIRCLE_RADIUS_M)
    return IncidentMarker(
        key=incident.key,
        position=incident.coordinate,
        classification=incident.classification,
        icon=MARKER_ICONS[incident.classification],
        title=POPUP_TITLES[incident.classification],
        message=incident.message,
        subtitle=f"{incident.place_name or 'Local desconhecido'} - {incident.time}",
        risk_circle=circle,
    )


def build_map_layers(state: RenderState) -> MapLayers:
    center = state.user_position or fallback_coordinate()

    if not state.protection_active:
        return MapLayers(center=center, active=False, overlay_message=OFFLINE_MESSAGE)

    session_circle = None
    if state.session_risk is not None:
        session_circle = risk_circle(
            state.session_risk.coordinate,
            state.session_risk.risk,
            SESSION_CIRCLE_RADIUS_M,
        )

    return MapLayers(
        center=center,
        active=True,
        user_marker=state.user_position,
        incident_markers=[incident_marker(i) for i in state.incidents],
        session_risk_circle=session_circle,
    )
