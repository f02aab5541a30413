from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from mastery.services.email_service import EmailService, get_email_service


def _response(status_code, body=""):
    return SimpleNamespace(status_code=status_code, body=body)


@pytest.fixture
def sendgrid_client():
    return MagicMock()


@pytest.fixture
def service(sendgrid_client):
    return EmailService(api_key="SG.test", from_email="noreply@example.com", from_name="Mastery",
                        admin_email="admin@example.com", client=sendgrid_client)


class TestSendEmail:

    def test_accepted(self, service, sendgrid_client):
        sendgrid_client.send.return_value = _response(202)
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>") is True
        assert sendgrid_client.send.call_count == 1

    def test_retries_server_errors(self, service, sendgrid_client):
        sendgrid_client.send.side_effect = [_response(503), _response(500), _response(202)]
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>") is True
        assert sendgrid_client.send.call_count == 3

    def test_gives_up_after_retries(self, service, sendgrid_client):
        sendgrid_client.send.side_effect = ConnectionError("reset")
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>", retries=2) is False
        assert sendgrid_client.send.call_count == 2

    def test_client_error_not_retried(self, service, sendgrid_client):
        sendgrid_client.send.return_value = _response(400, "bad request")
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>") is False
        assert sendgrid_client.send.call_count == 1

    def test_client_error_exception_not_retried(self, service, sendgrid_client):
        error = Exception("unauthorized")
        error.status_code = 401
        sendgrid_client.send.side_effect = error
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>") is False
        assert sendgrid_client.send.call_count == 1

    def test_unconfigured(self, monkeypatch):
        monkeypatch.delenv("SENDGRID_API_KEY", raising=False)
        service = EmailService(api_key=None)
        assert service.configured is False
        assert service.send_email("jean@example.com", "Sujet", "<p>Hi</p>") is False


class TestNotifications:

    def test_workflow_notification_escapes_contact(self, service, sendgrid_client):
        sendgrid_client.send.return_value = _response(202)
        contact = SimpleNamespace(full_name="<b>Jean</b>", email="jean@example.com")

        assert service.send_workflow_notification(contact, "Nouveau lead") is True

        message = sendgrid_client.send.call_args[0][0].get()
        assert message["personalizations"][0]["to"][0]["email"] == "admin@example.com"
        assert message["subject"] == "Notification workflow: Nouveau lead"
        assert "&lt;b&gt;Jean&lt;/b&gt;" in message["content"][0]["value"]

    def test_workflow_notification_explicit_recipient(self, service, sendgrid_client):
        sendgrid_client.send.return_value = _response(202)
        contact = SimpleNamespace(full_name="Jean", email="jean@example.com")

        service.send_workflow_notification(contact, None, recipient="ops@example.com")

        message = sendgrid_client.send.call_args[0][0].get()
        assert message["personalizations"][0]["to"][0]["email"] == "ops@example.com"

    def test_admin_notification_requires_admin_email(self, sendgrid_client, monkeypatch):
        monkeypatch.delenv("ADMIN_EMAIL", raising=False)
        service = EmailService(api_key="SG.test", client=sendgrid_client)
        assert service.send_admin_notification("contact_submission", {"email": "a@b.co"}) is False
        sendgrid_client.send.assert_not_called()

    def test_lead_confirmation_has_text_part(self, service, sendgrid_client):
        sendgrid_client.send.return_value = _response(202)

        assert service.send_lead_confirmation("Marie", "marie@example.com") is True

        contents = sendgrid_client.send.call_args[0][0].get()["content"]
        assert [part["type"] for part in contents] == ["text/plain", "text/html"]
        assert "Bonjour Marie" in contents[0]["value"]


def test_get_email_service_prefers_app_extension(app, email_service):
    assert get_email_service() is email_service


def test_contact_message_notification(service, sendgrid_client):
    sendgrid_client.send.return_value = _response(202)

    assert service.send_admin_notification(
        "contact_message", {"name": "Paul", "email": "paul@example.com", "message": "<i>Bonjour</i>"}) is True

    message = sendgrid_client.send.call_args[0][0].get()
    assert message["subject"] == "✉️ Nouveau message de contact"
    body = message["content"][0]["value"]
    assert "Paul" in body
    assert "&lt;i&gt;Bonjour&lt;/i&gt;" in body
