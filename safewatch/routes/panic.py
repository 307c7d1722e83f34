"""
panic.py — Panic button routes.

Routes:
  GET /api/v1/panic/contacts       — emergency contact list
  GET /api/v1/panic/{contact_id}   — tel: / sms: URIs for one contact
"""

from fastapi import APIRouter, HTTPException

from safewatch.core.errors import ValidationFailure
from safewatch.services.panic import EmergencyContact, PanicActions, emergency_contacts, panic_actions

router = APIRouter(prefix="/api/v1/panic", tags=["panic"])


@router.get("/contacts", response_model=list[EmergencyContact])
async def list_contacts():
    return emergency_contacts()


@router.get("/{contact_id}", response_model=PanicActions)
async def get_actions(contact_id: str):
    try:
        return panic_actions(contact_id)
    except ValidationFailure as exc:
        raise HTTPException(status_code=404, detail=exc.message)
