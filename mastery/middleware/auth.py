# -*- coding: utf-8 -*-
"""
Authentication decorators.

Admin endpoints take a Flask-JWT-Extended bearer token carrying a
``role: admin`` claim. Scheduler and service callers use the shared
internal token (MASTERY_ADMIN_TOKEN), sent as ``X-Internal-Token`` or as a
bearer token.
"""
import secrets
from functools import wraps
from typing import Optional

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from mastery.services.request_context import get_request_id, set_actor


def _error(code: str, message: str, status: int):
    return jsonify({'code': code, 'message': message, 'request_id': get_request_id()}), status


def _provided_internal_token() -> Optional[str]:
    token = request.headers.get('X-Internal-Token')
    if token:
        return token
    auth_header = request.headers.get('Authorization', '')
    # Support both "Bearer <token>" and direct token formats
    if auth_header.startswith('Bearer '):
        return auth_header[7:]
    return auth_header or None


def _internal_token_valid() -> bool:
    expected = current_app.config.get('MASTERY_ADMIN_TOKEN')
    provided = _provided_internal_token()
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided.encode('utf-8'), expected.encode('utf-8'))


def _admin_identity() -> Optional[str]:
    """Identity of a valid admin JWT, or None."""
    try:
        verify_jwt_in_request(locations=["headers"])
    except (JWTExtendedException, PyJWTError):
        return None
    claims = get_jwt() or {}
    roles = claims.get('roles') or []
    if claims.get('role') != 'admin' and 'admin' not in roles:
        return None
    return str(get_jwt_identity())


def require_internal_token(f):
    """Decorator to require MASTERY_ADMIN_TOKEN for service endpoints."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_app.config.get('MASTERY_ADMIN_TOKEN'):
            return _error('admin_not_configured', 'Admin token not configured', 500)
        if not _provided_internal_token():
            return _error('admin_token_required', 'Authorization header required', 401)
        if not _internal_token_valid():
            return _error('invalid_admin_token', 'Invalid admin token', 401)
        set_actor('internal')
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator: valid JWT with the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = _admin_identity()
        if identity is None:
            return _error('admin_required', 'Admin authentication required', 401)
        set_actor(identity)
        return f(*args, **kwargs)
    return decorated_function


def require_admin_or_internal(f):
    """Decorator: either the internal token or an admin JWT."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _internal_token_valid():
            set_actor('internal')
            return f(*args, **kwargs)
        identity = _admin_identity()
        if identity is None:
            return _error('admin_required', 'Admin authentication required', 401)
        set_actor(identity)
        return f(*args, **kwargs)
    return decorated_function
