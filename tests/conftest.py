"""
pytest configuration and shared fixtures for the SafeWatch tests.

Key concern: tests must not reach the real incident backend, the risk
service or Nominatim. Every outbound call goes through one
httpx.MockTransport backed by FakeUpstream, an in-memory stand-in for
all three services that records each request it receives.

Hosts used by the fixtures:
  https://nominatim.test   — geocoder
  http://backend.test      — incident backend (/alertas, /images)
  http://risk.test         — risk service (/risco-bairro)
"""

import os
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

from safewatch.integrations.backend import BackendClient
from safewatch.integrations.geocoding import GeocodingAdapter

QUALIFIER = "Brasília, DF, Brasil"
FALLBACK = (-15.7801, -47.9292)


def fixed_clock() -> datetime:
    return datetime(2026, 10, 19, 14, 30, tzinfo=ZoneInfo("America/Sao_Paulo"))


class FakeUpstream:
    """Routes requests by host + path and records them in ``requests``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

        # Nominatim
        self.places: dict[str, tuple[float, float]] = {}
        self.failing_places: set[str] = set()
        self.reverse_body: object = {"address": {"town": "Águas Claras"}, "display_name": "Águas Claras, DF"}
        self.reverse_status = 200

        # Backend
        self.incidents: list[dict] = []
        self.alertas_status = 200
        self.create_status = 201
        self.create_body: object = {"id": 42}
        self.images_status = 201
        self.backend_down = False

        # Risk service
        self.risk_body: object = {"risco": 0.5}
        self.risk_status = 200

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == path][-1]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host, path = request.url.host, request.url.path

        if host == "nominatim.test":
            return self._nominatim(request, path)
        if host == "risk.test" and path == "/risco-bairro":
            return httpx.Response(self.risk_status, json=self.risk_body)
        if host == "backend.test":
            if self.backend_down:
                raise httpx.ConnectError("connection refused", request=request)
            if path == "/alertas" and request.method == "GET":
                return httpx.Response(self.alertas_status, json=self.incidents)
            if path == "/alertas" and request.method == "POST":
                return httpx.Response(self.create_status, json=self.create_body)
            if path == "/images":
                return httpx.Response(self.images_status, json={"ok": True})
        return httpx.Response(404, json={"message": "not found"})

    def _nominatim(self, request: httpx.Request, path: str) -> httpx.Response:
        if path == "/search":
            place = request.url.params["q"].removesuffix(f", {QUALIFIER}")
            if place in self.failing_places:
                raise httpx.ReadTimeout("geocoder timed out", request=request)
            if place in self.places:
                lat, lng = self.places[place]
                return httpx.Response(200, json=[{"lat": str(lat), "lon": str(lng)}])
            return httpx.Response(200, json=[])
        if path == "/reverse":
            return httpx.Response(self.reverse_status, json=self.reverse_body)
        return httpx.Response(404)


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
async def http_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture()
def geocoder(http_client) -> GeocodingAdapter:
    return GeocodingAdapter(http_client, base_url="https://nominatim.test", region_qualifier=QUALIFIER)


@pytest.fixture()
def backend(http_client) -> BackendClient:
    return BackendClient(http_client, backend_url="http://backend.test", risk_service_url="http://risk.test")


@pytest.fixture()
def clock():
    return fixed_clock


@pytest.fixture()
def fallback() -> tuple[float, float]:
    return FALLBACK
