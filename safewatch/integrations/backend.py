"""
BackendClient — Typed REST client for the incident backend and risk service.

Endpoints:
  GET  {backend_url}/alertas                 — incident feed
  POST {backend_url}/alertas                 — create an incident report
  POST {backend_url}/images                  — multipart image report
  GET  {risk_service_url}/risco-bairro       — scalar risk for a region/time

Every response is validated here, at the boundary. Callers get typed
records or one of two exceptions:
  • NetworkFailure     — unreachable, or a non-success status. Carries the
                         status code and the decoded JSON body when there is one.
  • MalformedResponse  — reached, but the payload does not have the
                         expected shape.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from safewatch.core.config import settings
from safewatch.core.errors import MalformedResponse, NetworkFailure
from safewatch.models.backend import IncidentCreate, IncidentRecord, RiskResponse, parse_risk

logger = logging.getLogger(__name__)


def _json_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class BackendClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        backend_url: Optional[str] = None,
        risk_service_url: Optional[str] = None,
    ) -> None:
        self.client = client
        self.backend_url = (backend_url or settings.backend_url).rstrip("/")
        self.risk_service_url = (risk_service_url or settings.risk_service_url).rstrip("/")

    async def _request(self, method: str, url: str, expected: tuple[int, ...] = (200,), **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"{method} {url} failed: {str(exc) or type(exc).__name__}") from exc

        if response.status_code not in expected:
            logger.error(
                "Backend %s %s returned %s — %s",
                method,
                url,
                response.status_code,
                response.text[:200],
            )
            raise NetworkFailure(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                body=_json_body(response),
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse(f"invalid JSON from {response.request.url}") from exc

    # ── Incidents ─────────────────────────────────────────────────────────────

    async def list_incidents(self) -> list[IncidentRecord]:
        """
        Fetch the incident feed in backend order.

        A record that cannot be validated is skipped with a warning; the
        rest of the batch is still returned.
        """
        response = await self._request("GET", f"{self.backend_url}/alertas")
        data = self._decode(response)
        if not isinstance(data, list):
            raise MalformedResponse("GET /alertas did not return a list")

        records: list[IncidentRecord] = []
        for item in data:
            try:
                records.append(IncidentRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed incident record %r: %s", item, exc)
        return records

    async def create_incident(self, payload: IncidentCreate) -> IncidentRecord:
        response = await self._request(
            "POST",
            f"{self.backend_url}/alertas",
            expected=(201,),
            json=payload.model_dump(by_alias=True, mode="json"),
        )
        data = self._decode(response)
        try:
            return IncidentRecord.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponse(f"POST /alertas returned an unexpected body: {exc}") from exc

    async def upload_image(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        category: str,
        place_text: str,
        description: str,
    ) -> None:
        await self._request(
            "POST",
            f"{self.backend_url}/images",
            expected=(201,),
            files={"image": (filename, content, content_type)},
            data={"category": category, "location": place_text, "description": description},
        )

    # ── Risk ──────────────────────────────────────────────────────────────────

    async def fetch_risk(self, region: str, time_of_day: str) -> RiskResponse:
        """
        Ask the risk service for the risk of ``region`` at ``time_of_day``.

        Accepts ``{"risco": 0.73}``, ``{"risco": "0.73"}`` and a bare
        numeric body. Anything else raises MalformedResponse.
        """
        response = await self._request(
            "GET",
            f"{self.risk_service_url}/risco-bairro",
            params={"regiao_administrativa": region, "hora_ocorrencia": time_of_day},
        )
        data = self._decode(response)
        raw = data.get("risco") if isinstance(data, dict) else data
        risk = parse_risk(raw)
        if risk is None:
            raise MalformedResponse(f"unusable risk value: {raw!r}")
        return RiskResponse(risk=risk)
