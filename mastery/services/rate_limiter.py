# -*- coding: utf-8 -*-
"""
Rate Limiting Service.

Public submission endpoints are limited per submitted email address so a
single prospect cannot flood the lead tables. Flask-Limiter keeps the
counters in Redis, shared by every web process; it falls back to in-memory
storage when Redis is unavailable.
"""
from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from mastery.services.contact_service import ContactService


def submitted_email_key() -> str:
    """
    Rate-limit key: the submitted email, else the client IP.

    Form posts carry field ids rather than an ``email`` key, so the address
    is resolved the same way the contact upsert finds it.
    """
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        data = payload.get('data') if isinstance(payload.get('data'), dict) else payload
        email = ContactService.resolve_email(data, data)
        if isinstance(email, str) and email:
            return f"email:{email.lower()}"
    return f"ip:{get_remote_address()}"


limiter = Limiter(
    key_func=submitted_email_key,
    strategy="fixed-window",
    headers_enabled=True,
)


def init_rate_limiter(app):
    """
    Initialize Flask-Limiter with the app.

    Gracefully falls back to in-memory storage if Redis is unavailable.

    Args:
        app: Flask application instance

    Returns:
        Configured Limiter instance
    """
    storage_uri = app.config.get('RATELIMIT_STORAGE_URI') or 'memory://'

    if storage_uri.startswith(('redis://', 'rediss://')):
        try:
            import redis
            r = redis.from_url(storage_uri, socket_connect_timeout=2)
            r.ping()
            app.logger.info(f"Rate limiter using Redis: {storage_uri}")
        except Exception as e:
            app.logger.warning(f"Redis unavailable ({e}), using in-memory storage for rate limiting")
            storage_uri = "memory://"

    app.config['RATELIMIT_STORAGE_URI'] = storage_uri
    limiter.init_app(app)
    app.extensions['mastery_limiter'] = limiter
    return limiter
