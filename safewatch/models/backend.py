"""
backend.py — Wire records for the incident backend and the risk service.

The backend speaks Portuguese field names; each record maps them onto
Python names through aliases so the rest of the code never touches raw
dicts. Records are validated in ``BackendClient``; anything that does not
fit is reported as MalformedResponse there.

  GET  /alertas        → list[IncidentRecord]
  POST /alertas        ← IncidentCreate   → IncidentRecord (201)
  GET  /risco-bairro   → RiskResponse
"""

import logging
import math
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safewatch.models.incident import Classification

logger = logging.getLogger(__name__)

# Plain decimal literals only; rejects "nan", "inf", "1e3", "abc".
_NUMERIC_RE = re.compile(r"^\s*-?\d+(\.\d+)?\s*$")


def parse_risk(value: Any) -> Optional[float]:
    """
    Parse a risk value sent either as a JSON number or as an all-numeric
    string. Returns None when the value is missing, non-numeric or outside
    [0, 1].
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and _NUMERIC_RE.match(value):
        number = float(value)
    else:
        return None
    if math.isnan(number) or not 0.0 <= number <= 1.0:
        return None
    return number


class IncidentRecord(BaseModel):
    """One item of GET /alertas."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    occurrence_type: Optional[str] = Field(default=None, alias="TipoOcorrencia")
    description:     Optional[str] = Field(default=None, alias="Descricao")
    gender:          Optional[str] = Field(default=None, alias="Genero")
    classification:  Classification = Field(default=Classification.INFO, alias="ClassificacaoAlerta")
    place_name:      Optional[str] = Field(default=None, alias="Localizacao")
    occurred_at:     Optional[str] = Field(default=None, alias="HoraOcorrencia")
    risk:            Optional[float] = Field(default=None, alias="ProbabilidadeRisco")

    @field_validator("classification", mode="before")
    @classmethod
    def _coerce_classification(cls, value: Any) -> Any:
        try:
            return Classification(value)
        except ValueError:
            logger.warning("Unknown classification %r — treating as info", value)
            return Classification.INFO

    @field_validator("risk", mode="before")
    @classmethod
    def _coerce_risk(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        parsed = parse_risk(value)
        if parsed is None:
            logger.warning("Discarding unparseable incident risk %r", value)
        return parsed

    @field_validator("place_name", "occurred_at", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        if value is not None and not isinstance(value, str):
            return str(value)
        return value


class IncidentCreate(BaseModel):
    """Body of POST /alertas. Serialise with ``by_alias=True``."""

    model_config = ConfigDict(populate_by_name=True)

    gender:          str = Field(alias="Genero")
    classification:  Classification = Field(alias="ClassificacaoAlerta")
    occurrence_type: str = Field(alias="TipoOcorrencia")
    occurred_at:     str = Field(alias="HoraOcorrencia")   # "YYYY-MM-DD HH:MM:SS"
    description:     str = Field(alias="Descricao")
    place_name:      str = Field(alias="Localizacao")


class RiskResponse(BaseModel):
    """Body of GET /risco-bairro once its ``risco`` field has been parsed."""

    risk: float = Field(..., ge=0, le=1)
