"""
common.py — Shared value types: coordinates and reported failures.
"""

from pydantic import BaseModel, ConfigDict, Field

from safewatch.core.config import settings
from safewatch.core.errors import FailureKind, SafeWatchError


class Coordinate(BaseModel):
    """A WGS84 point. Frozen so it can be shared between render layers."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def fallback_coordinate() -> Coordinate:
    """The fixed default point used when nothing better can be resolved."""
    return Coordinate(lat=settings.fallback_lat, lng=settings.fallback_lng)


class Failure(BaseModel):
    """
    A recovered failure, returned instead of raised.

    Callers branch on ``isinstance(result, Failure)`` and apply their
    documented fallback; ``message`` is safe to log and, for submission
    failures only, to show to the user.
    """

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    message: str

    @classmethod
    def from_error(cls, exc: SafeWatchError) -> "Failure":
        return cls(kind=exc.kind, message=exc.message or str(exc))
