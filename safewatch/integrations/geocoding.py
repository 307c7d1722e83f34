"""
GeocodingAdapter — Forward/reverse geocoding via OpenStreetMap Nominatim.

Used by the incident feed (place name → coordinate), the risk lookup
(coordinate → administrative region) and the image report form
(coordinate → human-readable address).

Graceful degradation: nothing here raises past the adapter boundary.
Every call returns either a result or a ``Failure`` describing what went
wrong; callers substitute the fallback coordinate / region and carry on.
One failed lookup never affects another.

Nominatim usage policy: every request carries an identifying User-Agent
(settings.geocoder_user_agent), and a semaphore caps how many requests
are in flight at once.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from safewatch.core.config import settings
from safewatch.core.errors import FailureKind
from safewatch.models.common import Coordinate, Failure

logger = logging.getLogger(__name__)

# Address fields tried in order when naming the region around a point.
REGION_FIELDS = ("town", "city", "village", "suburb", "county")


class GeocodingAdapter:
    """
    Thin async wrapper around the Nominatim /search and /reverse endpoints.

    The httpx client is owned by the caller (the dashboard host opens one
    for the whole process); the adapter only adds the base URL, the
    User-Agent header and the concurrency cap.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        region_qualifier: Optional[str] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self.client = client
        self.base_url = (base_url or settings.geocoder_url).rstrip("/")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.region_qualifier = region_qualifier or settings.geocoder_region_qualifier
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.geocode_concurrency)

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        async with self._semaphore:
            response = await self.client.get(
                f"{self.base_url}/{path}",
                params=params,
                headers={"User-Agent": self.user_agent},
            )
        response.raise_for_status()
        return response.json()

    async def _lookup(self, path: str, params: dict[str, Any], what: str) -> Any:
        """Run one request; returns the decoded JSON or a Failure."""
        try:
            return await self._get(path, params)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Nominatim %s error: %s — %s",
                what,
                exc.response.status_code,
                exc.response.text[:200],
            )
            return Failure(kind=FailureKind.NETWORK, message=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.error("Nominatim %s request failed: %s", what, exc)
            return Failure(kind=FailureKind.NETWORK, message=str(exc) or type(exc).__name__)
        except ValueError as exc:
            logger.error("Nominatim %s returned invalid JSON: %s", what, exc)
            return Failure(kind=FailureKind.MALFORMED_RESPONSE, message="invalid JSON")

    async def forward_geocode(self, place_text: str, region_hint: Optional[str] = None) -> Coordinate | Failure:
        """
        Resolve free text to the first matching coordinate.

        The region qualifier (default "Brasília, DF, Brasil") is appended so
        that street and neighbourhood names resolve inside the city.
        """
        text = (place_text or "").strip()
        if not text:
            return Failure(kind=FailureKind.GEOCODING_MISS, message="empty place text")

        query = f"{text}, {region_hint or self.region_qualifier}"
        data = await self._lookup("search", {"q": query, "format": "json", "limit": 1}, "search")
        if isinstance(data, Failure):
            return data

        if not isinstance(data, list) or not data:
            logger.warning("Geocoding returned no results for %r — using fallback", text)
            return Failure(kind=FailureKind.GEOCODING_MISS, message=f"no results for {text!r}")

        first = data[0]
        try:
            return Coordinate(lat=float(first["lat"]), lng=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Geocoding result for %r has no usable lat/lon: %s", text, exc)
            return Failure(kind=FailureKind.MALFORMED_RESPONSE, message="result without lat/lon")

    async def _reverse(self, coordinate: Coordinate) -> dict | Failure:
        data = await self._lookup(
            "reverse",
            {"format": "json", "lat": coordinate.lat, "lon": coordinate.lng},
            "reverse",
        )
        if isinstance(data, Failure):
            return data
        if not isinstance(data, dict):
            return Failure(kind=FailureKind.MALFORMED_RESPONSE, message="reverse result is not an object")
        return data

    async def reverse_geocode(self, coordinate: Coordinate) -> str | Failure:
        """
        Name the administrative region around a coordinate.

        Picks the first non-empty of town / city / village / suburb / county.
        If the service answers with an address that has none of them, the
        "unknown region" sentinel is returned (this is a success, not a
        Failure). No address at all is a GEOCODING_MISS Failure.
        """
        data = await self._reverse(coordinate)
        if isinstance(data, Failure):
            return data

        address = data.get("address")
        if not isinstance(address, dict):
            logger.warning("Reverse geocoding found no address for %s,%s", coordinate.lat, coordinate.lng)
            return Failure(kind=FailureKind.GEOCODING_MISS, message="no address")

        for field in REGION_FIELDS:
            value = address.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return settings.unknown_region

    async def describe(self, coordinate: Coordinate) -> str:
        """Full display address for a point, used to pre-fill report forms."""
        data = await self._reverse(coordinate)
        if not isinstance(data, Failure):
            name = data.get("display_name")
            if isinstance(name, str) and name.strip():
                return name.strip()
        return f"Lat: {coordinate.lat}, Lng: {coordinate.lng} (endereço não encontrado)"
