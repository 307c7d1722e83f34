"""
submission.py — User report submission with optimistic local merge.

submit(report)
  1. Validate. A dict is parsed into IncidentReport; a failure here is a
     VALIDATION Failure and no request is sent.
  2. Geocode place_text. Empty or whitespace-only text, and any geocoding
     Failure, give the fallback coordinate.
  3. POST /alertas with the backend's field names.
  4. On 201: build an Incident with the backend id as the durable
     reference and a fresh local key. The caller merges it into the feed
     (IncidentFeedFetcher.inject) so it shows before the next poll.
  5. On any backend failure: a NETWORK Failure whose message comes from
     the response body's ``message`` when the backend sent one, or a
     generic connectivity message otherwise. No automatic retry.

upload_image(...) sends the image report form (multipart POST /images).
"""

import logging
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from safewatch.core.errors import FailureKind, MalformedResponse, NetworkFailure
from safewatch.core.timeutil import backend_timestamp, now_local, short_time
from safewatch.integrations.backend import BackendClient
from safewatch.integrations.geocoding import GeocodingAdapter
from safewatch.models.backend import IncidentCreate
from safewatch.models.common import Coordinate, Failure, fallback_coordinate
from safewatch.models.incident import Incident, IncidentReport, incident_message

logger = logging.getLogger(__name__)

CONNECTIVITY_MESSAGE = (
    "Erro de conexão com o servidor. Verifique sua conexão ou tente novamente mais tarde."
)
UNKNOWN_SERVER_MESSAGE = "Erro desconhecido do servidor"

IMAGE_CATEGORIES = ("emergencia", "infraestrutura", "suspeita", "iluminacao", "outro")
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(p) for p in error.get("loc", ())) or "report"
        parts.append(f"{field}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)


def _failure_message(exc: NetworkFailure) -> str:
    if exc.status_code is None:
        return CONNECTIVITY_MESSAGE
    message = exc.body.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return UNKNOWN_SERVER_MESSAGE


class IncidentSubmissionController:
    def __init__(
        self,
        backend: BackendClient,
        geocoder: GeocodingAdapter,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.backend = backend
        self.geocoder = geocoder
        self.clock = clock

    async def _coordinate_for(self, place_text: str) -> Coordinate:
        if not place_text.strip():
            logger.warning("Report has no place text — using fallback coordinate")
            return fallback_coordinate()
        result = await self.geocoder.forward_geocode(place_text)
        if isinstance(result, Failure):
            logger.warning("Geocoding failed for report place %r: %s", place_text, result.message)
            return fallback_coordinate()
        return result

    async def submit(self, report: IncidentReport | dict[str, Any]) -> Incident | Failure:
        if not isinstance(report, IncidentReport):
            try:
                report = IncidentReport.model_validate(report)
            except ValidationError as exc:
                logger.info("Rejected invalid report: %s", exc.error_count())
                return Failure(kind=FailureKind.VALIDATION, message=_validation_message(exc))

        coordinate = await self._coordinate_for(report.place_text)
        now = self.clock()
        payload = IncidentCreate(
            gender=report.gender,
            classification=report.classification,
            occurrence_type=report.occurrence_type,
            occurred_at=backend_timestamp(report.event_time or now),
            description=report.description,
            place_name=report.place_text,
        )

        try:
            created = await self.backend.create_incident(payload)
        except NetworkFailure as exc:
            logger.error("Report submission failed: %s", exc.message)
            return Failure(kind=FailureKind.NETWORK, message=_failure_message(exc))
        except MalformedResponse as exc:
            # The report was stored but the answer is unreadable; the next poll
            # will bring it in.
            logger.error("Report accepted but response unreadable: %s", exc.message)
            return Failure(kind=FailureKind.MALFORMED_RESPONSE, message=UNKNOWN_SERVER_MESSAGE)

        logger.info("Report stored by backend with id=%s", created.id)
        return Incident(
            backend_id=created.id,
            classification=report.classification,
            message=incident_message(report.gender, report.occurrence_type, report.description),
            place_name=report.place_text or None,
            coordinate=coordinate,
            time=short_time(now),
        )

    async def upload_image(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        category: str = "emergencia",
        place_text: str = "",
        description: str = "",
    ) -> bool | Failure:
        """Send an image report. Returns True once the backend has stored it."""
        if not content_type.startswith("image/"):
            return Failure(kind=FailureKind.VALIDATION, message="O arquivo enviado não é uma imagem.")
        if not content:
            return Failure(kind=FailureKind.VALIDATION, message="Imagem vazia.")
        if len(content) > MAX_IMAGE_BYTES:
            return Failure(kind=FailureKind.VALIDATION, message="Imagem maior que 10MB.")
        if category not in IMAGE_CATEGORIES:
            return Failure(kind=FailureKind.VALIDATION, message=f"Categoria inválida: {category}")

        try:
            await self.backend.upload_image(content, filename, content_type, category, place_text, description)
        except NetworkFailure as exc:
            logger.error("Image upload failed: %s", exc.message)
            return Failure(kind=FailureKind.NETWORK, message=_failure_message(exc))
        logger.info("Image report %r uploaded (%s)", filename, category)
        return True
