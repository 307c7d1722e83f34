"""
incidents.py — Incident list, report submission and image reports.

Routes:
  GET  /api/v1/incidents  — the current render-ready incident list
  POST /api/v1/incidents  — submit a report (rate limited)
  POST /api/v1/images     — multipart image report

A successful submission returns 201 with the Incident that was merged
into the list. Failures map to 422 (invalid report) or 502 (backend
unreachable / rejected) with the user-facing message in ``detail``.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from safewatch.core.config import settings
from safewatch.core.rate_limit import limiter
from safewatch.models.common import Failure
from safewatch.models.incident import Incident, IncidentReport
from safewatch.routes.deps import failure_to_http, require_dashboard
from safewatch.services.dashboard import SafetyDashboard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["incidents"])


@router.get("/incidents", response_model=list[Incident])
async def list_incidents(dashboard: SafetyDashboard = Depends(require_dashboard)):
    return dashboard.feed.incidents


@router.post("/incidents", response_model=Incident, status_code=201)
@limiter.limit(settings.submission_rate_limit)
async def submit_incident(
    request: Request,
    payload: IncidentReport,
    dashboard: SafetyDashboard = Depends(require_dashboard),
):
    result = await dashboard.submit_report(payload)
    if isinstance(result, Failure):
        raise failure_to_http(result)
    return result


@router.post("/images", status_code=201)
async def upload_image(
    image: UploadFile = File(...),
    category: str = Form(default="emergencia"),
    location: str = Form(default=""),
    description: str = Form(default=""),
    dashboard: SafetyDashboard = Depends(require_dashboard),
):
    content = await image.read()
    result = await dashboard.upload_image(
        content=content,
        filename=image.filename or "image",
        content_type=image.content_type or "application/octet-stream",
        category=category,
        place_text=location,
        description=description,
    )
    if isinstance(result, Failure):
        raise failure_to_http(result)
    return {"ok": True}
