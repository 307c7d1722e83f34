"""
Route helpers shared by every router.
"""

from fastapi import Depends, HTTPException

from safewatch.core.errors import FailureKind
from safewatch.models.common import Failure
from safewatch.services.dashboard import SafetyDashboard, get_dashboard

_FAILURE_STATUS = {
    FailureKind.VALIDATION: 422,
    FailureKind.LOCATION_UNAVAILABLE: 409,
    FailureKind.GEOCODING_MISS: 404,
    FailureKind.NETWORK: 502,
    FailureKind.MALFORMED_RESPONSE: 502,
}


def require_dashboard(dashboard: SafetyDashboard | None = Depends(get_dashboard)) -> SafetyDashboard:
    if dashboard is None:
        raise HTTPException(status_code=503, detail="Dashboard not started")
    return dashboard


def failure_to_http(failure: Failure) -> HTTPException:
    return HTTPException(
        status_code=_FAILURE_STATUS.get(failure.kind, 502),
        detail={"kind": failure.kind.value, "message": failure.message},
    )
