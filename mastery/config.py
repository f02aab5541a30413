import os


def _bool_env(key: str, default: str) -> bool:
    return os.environ.get(key, default).lower() in ("1", "true", "yes", "on")


def normalize_db_url(url: str) -> str:
    """
    Normalize DATABASE_URL so SQLAlchemy loads the right DBAPI.
    We standardize on the psycopg v3 driver ('+psycopg').
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg://" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


class Config:
    """Settings read from the environment when the app is created."""

    def __init__(self):
        self.SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
        self.SQLALCHEMY_DATABASE_URI = normalize_db_url(
            os.environ.get("DATABASE_URL", "sqlite:///mastery.db"))
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False

        # --- Auth ---
        self.JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-key")
        self.JWT_ALGORITHM = "HS256"
        self.MASTERY_ADMIN_TOKEN = os.environ.get("MASTERY_ADMIN_TOKEN")

        # --- Redis / rate limiting ---
        self.REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self.RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", self.REDIS_URL)
        self.RATELIMIT_ENABLED = _bool_env("RATELIMIT_ENABLED", "true")
        self.LEAD_RATE_LIMIT = os.environ.get("LEAD_RATE_LIMIT", "5 per hour")
        self.CONTACT_MESSAGE_RATE_LIMIT = os.environ.get("CONTACT_MESSAGE_RATE_LIMIT", "3 per hour")

        # --- reCAPTCHA (verification skipped when no secret is set) ---
        self.RECAPTCHA_SECRET_KEY = os.environ.get("RECAPTCHA_SECRET_KEY")
        self.RECAPTCHA_VERIFY_URL = os.environ.get(
            "RECAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify")

        # --- Email ---
        self.SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY")
        self.MAIL_FROM_EMAIL = os.environ.get(
            "MAIL_FROM_EMAIL", "noreply@metaadsmastery.dalaconcept.com")
        self.MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Meta Ads Mastery")
        self.ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL")

        # --- Workflows ---
        self.WORKFLOW_DISPATCH_MODE = os.environ.get("WORKFLOW_DISPATCH_MODE", "inline")
        self.WORKFLOW_DELAYS_ENABLED = _bool_env("WORKFLOW_DELAYS_ENABLED", "true")
        self.INACTIVITY_DEFAULT_DAYS = int(os.environ.get("INACTIVITY_DEFAULT_DAYS", "7"))

        # --- Observability ---
        self.MASTERY_LOG_JSON = _bool_env("MASTERY_LOG_JSON", "true")
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.MASTERY_METRICS_ENABLED = _bool_env("MASTERY_METRICS_ENABLED", "true")

        self.CORS_ALLOWED_ORIGINS = [
            origin.strip()
            for origin in os.environ.get(
                "CORS_ALLOWED_ORIGINS",
                "https://metaadsmastery.dalaconcept.com,http://localhost:5173",
            ).split(",")
            if origin.strip()
        ]

        self.MASTERY_DB_AUTOCREATE = _bool_env("MASTERY_DB_AUTOCREATE", "false")
        self.MASTERY_DB_MIGRATE_ON_START = _bool_env("MASTERY_DB_MIGRATE_ON_START", "true")
