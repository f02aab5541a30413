from unittest.mock import patch

import requests
from flask.testing import FlaskClient

from mastery.database import db
from mastery.models import ContactSubmission


def _lead(**overrides):
    body = {"first_name": " Marie ", "last_name": "Curie", "email": "Marie.Curie@Example.com",
            "phone_number": "+33 6 12 34 56 78"}
    body.update(overrides)
    return body


def test_valid_submission_is_stored_normalized(client: FlaskClient, email_service):
    response = client.post("/api/v1/contact-submissions", json=_lead())

    assert response.status_code == 200
    assert response.json == {"success": True, "message": "Votre demande a été enregistrée avec succès"}
    submission = db.session.query(ContactSubmission).one()
    assert submission.first_name == "Marie"
    assert submission.email == "marie.curie@example.com"
    assert submission.phone_number == "+33 6 12 34 56 78"
    email_service.send_lead_confirmation.assert_called_once_with("Marie", "marie.curie@example.com")
    assert email_service.send_admin_notification.call_args.args[0] == "contact_submission"


def test_phone_is_optional(client: FlaskClient):
    body = _lead()
    del body["phone_number"]
    response = client.post("/api/v1/contact-submissions", json=body)
    assert response.status_code == 200
    assert db.session.query(ContactSubmission).one().phone_number == ""


def test_blank_first_name(client: FlaskClient):
    response = client.post("/api/v1/contact-submissions", json=_lead(first_name="   "))
    assert response.status_code == 400
    assert response.json["error"] == "Le prénom est invalide (1-100 caractères requis)"


def test_invalid_email(client: FlaskClient):
    response = client.post("/api/v1/contact-submissions", json=_lead(email="not-an-email"))
    assert response.status_code == 400
    assert response.json["error"] == "L'adresse email est invalide"


def test_invalid_phone(client: FlaskClient):
    response = client.post("/api/v1/contact-submissions", json=_lead(phone_number="call me"))
    assert response.status_code == 400
    assert response.json["error"] == "Le numéro de téléphone est invalide"


def test_mail_failure_does_not_fail_submission(client: FlaskClient, email_service):
    email_service.send_lead_confirmation.return_value = False
    email_service.send_admin_notification.return_value = False
    response = client.post("/api/v1/contact-submissions", json=_lead())
    assert response.status_code == 200


def test_rate_limited_per_email(client: FlaskClient):
    for _ in range(5):
        assert client.post("/api/v1/contact-submissions", json=_lead()).status_code == 200

    response = client.post("/api/v1/contact-submissions", json=_lead())
    assert response.status_code == 429
    assert response.json["error"] == "rate_limit_exceeded"

    other = client.post("/api/v1/contact-submissions", json=_lead(email="someone@example.com"))
    assert other.status_code == 200


class TestRecaptcha:

    def test_rejected_token(self, client: FlaskClient, app):
        app.config["RECAPTCHA_SECRET_KEY"] = "secret"
        with patch("mastery.services.recaptcha.requests.post") as post:
            post.return_value.json.return_value = {"success": False, "error-codes": ["invalid-input-response"]}
            response = client.post("/api/v1/contact-submissions", json=_lead(recaptchaToken="bad-token"))

        assert response.status_code == 400
        assert response.json["error"] == "Vérification reCAPTCHA échouée. Veuillez réessayer."
        assert post.call_args.kwargs["data"]["secret"] == "secret"
        assert post.call_args.kwargs["data"]["response"] == "bad-token"
        assert db.session.query(ContactSubmission).count() == 0

    def test_accepted_token(self, client: FlaskClient, app):
        app.config["RECAPTCHA_SECRET_KEY"] = "secret"
        with patch("mastery.services.recaptcha.requests.post") as post:
            post.return_value.json.return_value = {"success": True}
            response = client.post("/api/v1/contact-submissions", json=_lead(recaptchaToken="good-token"))

        assert response.status_code == 200
        assert db.session.query(ContactSubmission).count() == 1

    def test_verification_error_rejects(self, client: FlaskClient, app):
        app.config["RECAPTCHA_SECRET_KEY"] = "secret"
        with patch("mastery.services.recaptcha.requests.post",
                   side_effect=requests.ConnectionError("unreachable")):
            response = client.post("/api/v1/contact-submissions", json=_lead(recaptchaToken="token"))

        assert response.status_code == 400

    def test_skipped_without_secret(self, client: FlaskClient, app):
        app.config["RECAPTCHA_SECRET_KEY"] = None
        with patch("mastery.services.recaptcha.requests.post") as post:
            response = client.post("/api/v1/contact-submissions", json=_lead(recaptchaToken="any"))

        assert response.status_code == 200
        post.assert_not_called()
