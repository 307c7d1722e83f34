"""
test_panic.py — Emergency contacts and call/SMS URIs.
"""

import pytest

from safewatch.core.errors import ValidationFailure
from safewatch.services.panic import PANIC_MESSAGE, call_uri, emergency_contacts, panic_actions, sms_uri


class TestContacts:
    def test_public_services_first(self):
        ids = [c.id for c in emergency_contacts()]
        assert ids == ["police", "fire", "samu", "contact1", "contact2"]

    @pytest.mark.parametrize("contact_id,uri", [
        ("police", "tel:190"),
        ("fire", "tel:193"),
        ("samu", "tel:192"),
        ("contact1", "tel:+5511999999999"),
    ])
    def test_call_uri(self, contact_id, uri):
        assert call_uri(contact_id) == uri

    def test_sms_uri_carries_encoded_message(self):
        uri = sms_uri("contact2")
        assert uri.startswith("sms:+5511888888888?body=")
        assert " " not in uri
        assert "EMERG%C3%8ANCIA%21" in uri

    def test_unknown_contact(self):
        with pytest.raises(ValidationFailure):
            call_uri("neighbour")

    def test_panic_actions(self):
        actions = panic_actions("samu")
        assert actions.contact.name == "SAMU (192)"
        assert actions.call_uri == "tel:192"
        assert actions.sms_uri.startswith("sms:192?body=")
        assert PANIC_MESSAGE.startswith("EMERGÊNCIA!")
