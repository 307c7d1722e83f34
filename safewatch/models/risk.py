"""
risk.py — Session risk state and the risk bands shown to the user.
"""

from pydantic import BaseModel, ConfigDict, Field

from safewatch.models.common import Coordinate
from safewatch.models.incident import Classification


class SessionRiskState(BaseModel):
    """The one successful risk lookup of an activation session."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    risk: float = Field(..., ge=0, le=1)
    region: str
    time_of_day: str   # "HH:MM" sent to the risk service


class RiskBand(BaseModel):
    """Presentation band for a risk value (popup title, colour, advice)."""

    model_config = ConfigDict(frozen=True)

    label: str
    classification: Classification
    description: str


# (lower bound, band), checked top to bottom.
_BANDS: list[tuple[float, RiskBand]] = [
    (0.80, RiskBand(
        label="Crítico",
        classification=Classification.CRITICAL,
        description="Perigo iminente detectado. Evite a área e procure um local seguro.",
    )),
    (0.60, RiskBand(
        label="Alto Risco",
        classification=Classification.DANGER,
        description="Condições de alto risco. Mantenha-se alerta e considere alterar sua rota.",
    )),
    (0.40, RiskBand(
        label="Médio Risco",
        classification=Classification.WARNING,
        description="Risco moderado identificado. Tenha cautela.",
    )),
    (0.20, RiskBand(
        label="Baixo Risco",
        classification=Classification.LOW,
        description="A área é considerada de baixo risco, mas a vigilância é recomendada.",
    )),
]

_INFORMATIVE = RiskBand(
    label="Informativo",
    classification=Classification.INFO,
    description="Nenhum alerta de risco significativo no momento.",
)


def risk_band(value: float) -> RiskBand:
    """Map a risk value in [0, 1] to its band."""
    for threshold, band in _BANDS:
        if value >= threshold:
            return band
    return _INFORMATIVE
