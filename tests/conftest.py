import os
import tempfile
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from flask_jwt_extended import create_access_token

# Set test environment variables
os.environ["TESTING"] = "true"

INTERNAL_TOKEN = "test-internal-token"


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp()
    from mastery.factory import create_app
    from mastery.database import db
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "RATELIMIT_STORAGE_URI": "memory://",
        "JWT_SECRET_KEY": "test-jwt-secret-key-that-is-long-enough",
        "MASTERY_ADMIN_TOKEN": INTERNAL_TOKEN,
        "ADMIN_EMAIL": "admin@example.com",
        "RECAPTCHA_SECRET_KEY": None,
        "MASTERY_LOG_JSON": False,
        "MASTERY_DB_MIGRATE_ON_START": False,
        "WORKFLOW_DISPATCH_MODE": "inline",
        "WORKFLOW_DELAYS_ENABLED": True,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture(autouse=True)
def email_service(app):
    """Replace SendGrid with a mock that accepts every message."""
    from mastery.services.email_service import EmailService
    service = MagicMock(spec=EmailService)
    service.admin_email = "admin@example.com"
    service.send_email.return_value = True
    service.send_workflow_notification.return_value = True
    service.send_admin_notification.return_value = True
    service.send_lead_confirmation.return_value = True
    app.extensions['email_service'] = service
    return service


@pytest.fixture
def admin_headers(app) -> dict:
    token = create_access_token(identity="admin-1", additional_claims={"role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def internal_headers() -> dict:
    return {"X-Internal-Token": INTERNAL_TOKEN}


@pytest.fixture
def make_contact(app):
    from mastery.database import db
    from mastery.models import Contact

    def _make(email="jean@example.com", **fields):
        fields.setdefault("tags", [])
        contact = Contact(email=email, **fields)
        db.session.add(contact)
        db.session.commit()
        return contact
    return _make


@pytest.fixture
def make_workflow(app):
    from mastery.database import db
    from mastery.models import Workflow

    def _make(actions=None, trigger_type="manual", trigger_config=None, status="active", name="Test workflow"):
        workflow = Workflow(
            name=name,
            status=status,
            trigger_type=trigger_type,
            trigger_config=trigger_config or {},
            actions=actions or [],
        )
        db.session.add(workflow)
        db.session.commit()
        return workflow
    return _make


@pytest.fixture
def make_template(app):
    from mastery.database import db
    from mastery.models import EmailTemplate

    def _make(subject="Bonjour {contact_name}", html_body="<p>Bonjour {contact_name} ({email})</p>",
              template_key="welcome"):
        template = EmailTemplate(template_key=template_key, subject=subject, html_body=html_body)
        db.session.add(template)
        db.session.commit()
        return template
    return _make


@pytest.fixture
def days_ago():
    from mastery.models.base import utcnow

    def _days_ago(days):
        return utcnow() - timedelta(days=days)
    return _days_ago
