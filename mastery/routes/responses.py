# -*- coding: utf-8 -*-
"""JSON response helpers shared by the blueprints."""

from flask import g, jsonify
from pydantic import ValidationError


def error_response(error: str, message: str = None, status_code: int = 400, details=None, **extra):
    """Generate consistent error response with request_id."""
    response = {
        'error': error,
        'request_id': getattr(g, 'request_id', None),
        **extra
    }
    if message:
        response['message'] = message
    if details:
        response['details'] = details
    return jsonify(response), status_code


def validation_details(exc: ValidationError) -> list:
    """Pydantic errors reduced to JSON-safe {field, message} pairs."""
    details = []
    for item in exc.errors():
        field = '.'.join(str(part) for part in item.get('loc', ())) or None
        details.append({'field': field, 'message': item.get('msg')})
    return details
