"""
incident.py — Render-ready incidents and user-submitted reports.

Identity
────────
An Incident carries two identities that must never be conflated:
  • key         — a uuid4 string generated locally for list-rendering
                  identity. It changes on every full refresh.
  • backend_id  — the integer the incident backend assigned. This is the
                  durable reference; it is None only when the backend
                  omitted it.

Coordinates
───────────
``coordinate`` is required. The feed and the submission controller
substitute the fallback point before constructing an Incident, so the
map never receives an unplaceable marker.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safewatch.models.common import Coordinate

GENDER_UNDISCLOSED = "Não desejo informar"
NOT_AVAILABLE = "N/A"


class Classification(str, Enum):
    """Severity tags as the backend spells them, most severe first."""

    CRITICAL = "critico"
    DANGER = "danger"
    WARNING = "warning"
    LOW = "low"
    INFO = "info"


def new_key() -> str:
    return str(uuid.uuid4())


def incident_message(gender: Optional[str], occurrence_type: Optional[str], description: Optional[str]) -> str:
    """Popup / alert-panel text for an incident."""
    return (
        f"Denúncia de {gender or GENDER_UNDISCLOSED}: {occurrence_type or NOT_AVAILABLE}. "
        f"Detalhes: {description or NOT_AVAILABLE}"
    )


class Incident(BaseModel):
    """A single incident ready for the map and the alert panel."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(default_factory=new_key)
    backend_id: Optional[int] = None
    classification: Classification
    message: str
    place_name: Optional[str] = None
    coordinate: Coordinate
    time: str = NOT_AVAILABLE          # localized "HH:MM"
    risk: Optional[float] = Field(default=None, ge=0, le=1)


class IncidentReport(BaseModel):
    """
    What the user fills in on the report form.

    Validation happens here, before any network call: a report without an
    occurrence type or with an unknown classification never leaves the client.
    """

    occurrence_type: str = Field(..., min_length=1, max_length=200)
    classification: Classification = Classification.INFO
    description: str = Field(default="", max_length=2000)
    place_text: str = Field(default="", max_length=300)
    gender: str = Field(default=GENDER_UNDISCLOSED, max_length=50)
    event_time: Optional[datetime] = None

    @field_validator("occurrence_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("occurrence_type must not be blank")
        return value
