"""
panic.py — Emergency contacts for the panic flow.

The panic dialog lets the user pick a contact and either call it or send
a pre-written SMS. The host only builds the ``tel:`` / ``sms:`` URIs; the
device opens them.
"""

from urllib.parse import quote

from pydantic import BaseModel

from safewatch.core.config import settings
from safewatch.core.errors import ValidationFailure

PANIC_MESSAGE = (
    "EMERGÊNCIA! Preciso de ajuda urgente. "
    "Esta é uma mensagem automática do meu botão de pânico."
)


class EmergencyContact(BaseModel):
    id: str
    name: str
    phone: str


class PanicActions(BaseModel):
    contact: EmergencyContact
    call_uri: str
    sms_uri: str


def emergency_contacts() -> list[EmergencyContact]:
    return [
        EmergencyContact(id="police", name="Polícia (190)", phone="190"),
        EmergencyContact(id="fire", name="Bombeiros (193)", phone="193"),
        EmergencyContact(id="samu", name="SAMU (192)", phone="192"),
        EmergencyContact(id="contact1", name="Contato de Emergência 1", phone=settings.emergency_contact_1),
        EmergencyContact(id="contact2", name="Contato de Emergência 2", phone=settings.emergency_contact_2),
    ]


def find_contact(contact_id: str) -> EmergencyContact:
    for contact in emergency_contacts():
        if contact.id == contact_id:
            return contact
    raise ValidationFailure(f"Unknown emergency contact: {contact_id}")


def _dial_string(phone: str) -> str:
    # Keep a leading "+" and digits only.
    return "".join(ch for i, ch in enumerate(phone) if ch.isdigit() or (ch == "+" and i == 0))


def call_uri(contact_id: str) -> str:
    return f"tel:{_dial_string(find_contact(contact_id).phone)}"


def sms_uri(contact_id: str, message: str = PANIC_MESSAGE) -> str:
    return f"sms:{_dial_string(find_contact(contact_id).phone)}?body={quote(message)}"


def panic_actions(contact_id: str) -> PanicActions:
    return PanicActions(
        contact=find_contact(contact_id),
        call_uri=call_uri(contact_id),
        sms_uri=sms_uri(contact_id),
    )
