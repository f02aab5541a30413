# -*- coding: utf-8 -*-
"""
Request context middleware.

Generates or propagates a request_id for every request, exposes it through
Flask's ``g`` and echoes it back in the ``X-Request-ID`` response header so
that log lines written while handling a form post or a workflow execution can
be correlated.
"""

import time
import uuid
from typing import Optional

from flask import Flask, Response, g, request


class RequestContextMiddleware:
    """Middleware for managing request context and request_id propagation."""

    def __init__(self, app: Flask):
        self.app = app
        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        g.request_id = self._get_or_generate_request_id()
        g.request_start_time = time.time()
        g.request_method = request.method
        g.request_path = request.path
        g.request_remote_addr = request.remote_addr
        # populated by the auth decorators
        g.actor = None

    def _after_request(self, response: Response) -> Response:
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id

        if hasattr(g, 'request_start_time'):
            duration_ms = round((time.time() - g.request_start_time) * 1000, 2)
            response.headers['X-Response-Time'] = f"{duration_ms}ms"

        return response

    def _get_or_generate_request_id(self) -> str:
        request_id = request.headers.get('X-Request-ID')
        if request_id:
            try:
                uuid.UUID(request_id)
                return request_id
            except ValueError:
                # not a UUID, issue our own
                pass
        return str(uuid.uuid4())


def get_request_id() -> Optional[str]:
    """Get current request_id from Flask g context."""
    return getattr(g, 'request_id', None)


def get_request_context() -> dict:
    """Get request context fields for structured logs."""
    context = {
        'request_id': getattr(g, 'request_id', None),
        'method': getattr(g, 'request_method', None),
        'path': getattr(g, 'request_path', None),
        'remote_addr': getattr(g, 'request_remote_addr', None),
    }
    actor = getattr(g, 'actor', None)
    if actor:
        context['actor'] = actor
    return {key: value for key, value in context.items() if value is not None}


def set_actor(actor: str) -> None:
    """Record who is making the request (admin user id or 'internal')."""
    g.actor = actor


def init_request_context(app: Flask) -> RequestContextMiddleware:
    """Initialize request context middleware for the app."""
    return RequestContextMiddleware(app)
