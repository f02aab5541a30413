# -*- coding: utf-8 -*-
from pathlib import Path

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from mastery.config import Config
from mastery.database import db

# Observability imports
from mastery.services.metrics import init_metrics
from mastery.services.request_context import init_request_context
from mastery.services.structured_logging import init_logging


def _migrate_db(app):
    """Run Alembic migrations to head using the app's DB URL."""
    try:
        from alembic import command
        from alembic.config import Config as AlembicConfig
    except ImportError:
        app.logger.error("Failed to run migrations: Alembic not installed")
        return  # do not crash the process

    base_dir = Path(__file__).resolve().parent.parent
    cfg = AlembicConfig()  # in-memory config, avoid alembic.ini dependency
    cfg.set_main_option("script_location", str(base_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])

    command.upgrade(cfg, "head")
    app.logger.info("Database migrations applied successfully")


def create_app(config_overrides: dict = None) -> Flask:
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # --- Config (env first, then explicit overrides for tests) ---
    app.config.from_object(Config())
    if config_overrides:
        app.config.update(config_overrides)

    db.init_app(app)

    # --- JWT ---
    JWTManager(app)

    # --- CORS ---
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config["CORS_ALLOWED_ORIGINS"],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization", "X-Request-ID"],
            "supports_credentials": False,
            "max_age": 600,
        }}
    )

    # --- Initialize observability ---
    init_logging(app)
    init_request_context(app)
    init_metrics(app)

    # --- Error handlers ---
    from mastery.middleware.errors import register_error_handlers
    register_error_handlers(app)

    # --- Rate limiting (Redis, degrades to memory) ---
    from mastery.services.rate_limiter import init_rate_limiter
    init_rate_limiter(app)

    # --- Email ---
    from mastery.services.email_service import EmailService
    app.extensions['email_service'] = EmailService(
        api_key=app.config.get("SENDGRID_API_KEY"),
        from_email=app.config.get("MAIL_FROM_EMAIL"),
        from_name=app.config.get("MAIL_FROM_NAME"),
        admin_email=app.config.get("ADMIN_EMAIL"),
    )

    # --- Mount blueprints ---
    from mastery.routes import forms, health, internal, leads, workflows
    app.register_blueprint(health.health_bp)
    app.register_blueprint(workflows.workflows_bp)
    app.register_blueprint(forms.forms_bp)
    app.register_blueprint(leads.leads_bp)
    app.register_blueprint(internal.internal_bp)

    # --- CLI ---
    from mastery.cli import init_cli
    init_cli(app)

    # --- DB init ---
    with app.app_context():
        import mastery.models  # noqa: F401  (register tables on the metadata)

        # Only auto-create tables in testing or if explicitly enabled
        is_testing = bool(app.config.get("TESTING"))
        if is_testing or app.config.get("MASTERY_DB_AUTOCREATE"):
            db.create_all()

        # Skip migrations in test mode since db.create_all() already creates correct schema
        if not is_testing and app.config.get("MASTERY_DB_MIGRATE_ON_START"):
            try:
                _migrate_db(app)
            except Exception as e:
                app.logger.error(f"Failed to run migrations: {e}")
                raise

    return app
