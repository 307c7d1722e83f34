"""
test_presenter.py — Map layers derived from a RenderState.
"""

import pytest

from safewatch.models.common import Coordinate
from safewatch.models.dashboard import RenderState
from safewatch.models.incident import Classification, Incident
from safewatch.models.risk import SessionRiskState
from safewatch.services.presenter import (
    INCIDENT_CIRCLE_RADIUS_M,
    MARKER_ICONS,
    OFFLINE_MESSAGE,
    SESSION_CIRCLE_RADIUS_M,
    build_map_layers,
    incident_marker,
)

USER = Coordinate(lat=-15.83, lng=-48.02)


def _incident(classification=Classification.DANGER, risk=None, place="Guará"):
    return Incident(
        backend_id=1,
        classification=classification,
        message="Denúncia de Feminino: Assalto. Detalhes: N/A",
        place_name=place,
        coordinate=Coordinate(lat=-15.82, lng=-47.98),
        time="21:05",
        risk=risk,
    )


def _session(risk=0.65):
    return SessionRiskState(coordinate=USER, risk=risk, region="Águas Claras", time_of_day="14:30")


class TestBuildMapLayers:
    def test_inactive_shows_overlay_only(self, fallback):
        state = RenderState(protection_active=False, incidents=[_incident()], session_risk=_session())
        layers = build_map_layers(state)

        assert layers.overlay_message == OFFLINE_MESSAGE
        assert layers.incident_markers == []
        assert layers.user_marker is None
        assert layers.session_risk_circle is None
        assert (layers.center.lat, layers.center.lng) == fallback

    def test_active_shows_everything(self):
        state = RenderState(
            protection_active=True,
            user_position=USER,
            incidents=[_incident(), _incident(Classification.INFO)],
            session_risk=_session(),
        )
        layers = build_map_layers(state)

        assert layers.active
        assert layers.overlay_message is None
        assert layers.center == USER
        assert layers.user_marker == USER
        assert len(layers.incident_markers) == 2
        circle = layers.session_risk_circle
        assert circle.radius_m == SESSION_CIRCLE_RADIUS_M
        assert circle.band.label == "Alto Risco"
        assert circle.center == USER

    def test_active_without_position_centres_on_fallback(self, fallback):
        layers = build_map_layers(RenderState(protection_active=True))
        assert (layers.center.lat, layers.center.lng) == fallback
        assert layers.user_marker is None
        assert layers.session_risk_circle is None


class TestIncidentMarker:
    @pytest.mark.parametrize("classification,colour", [
        (Classification.CRITICAL, "red"),
        (Classification.DANGER, "orange"),
        (Classification.WARNING, "yellow"),
        (Classification.LOW, "green"),
        (Classification.INFO, "blue"),
    ])
    def test_icon_per_classification(self, classification, colour):
        marker = incident_marker(_incident(classification))
        assert marker.icon == MARKER_ICONS[classification]
        assert marker.icon.endswith(f"marker-icon-{colour}.png")

    def test_subtitle_and_popup(self):
        marker = incident_marker(_incident(Classification.CRITICAL))
        assert marker.subtitle == "Guará - 21:05"
        assert marker.title == "ALERTA DE PERIGO IMINENTE!"

    def test_unknown_place_subtitle(self):
        assert incident_marker(_incident(place=None)).subtitle == "Local desconhecido - 21:05"

    def test_risk_circle_only_with_risk(self):
        assert incident_marker(_incident()).risk_circle is None

        circle = incident_marker(_incident(risk=0.9)).risk_circle
        assert circle.radius_m == INCIDENT_CIRCLE_RADIUS_M
        assert circle.band.classification == Classification.CRITICAL
        assert circle.color == "#ef4444"
