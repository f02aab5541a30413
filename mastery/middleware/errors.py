"""
Error Handling Middleware
Translates database and rate-limit failures into JSON responses
"""
from flask import jsonify, request
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError, IntegrityError
from werkzeug.exceptions import HTTPException

from mastery.infra.log import get_logger
from mastery.services.metrics import get_metrics_service

logger = get_logger(__name__)


def register_error_handlers(app):
    """Register app-wide error handlers"""

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        """Handle database operational errors (connection, table not found, etc.)"""
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)

        if 'does not exist' in error_msg or 'no such table' in error_msg:
            logger.error(f"Database table not found: {error_msg}")
            return jsonify({
                'error': 'feature_not_ready',
                'message': 'This feature requires database migration. Please contact support.'
            }), 503

        logger.error(f"Database operational error: {error_msg}")
        return jsonify({
            'error': 'database_error',
            'message': 'Database operation failed. Please try again later.'
        }), 503

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        """Handle database integrity errors (foreign key, unique constraint)"""
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database integrity error: {error_msg}")

        if 'foreign key' in error_msg.lower():
            return jsonify({
                'error': 'invalid_reference',
                'message': 'Referenced entity does not exist'
            }), 400

        if 'unique' in error_msg.lower() or 'duplicate' in error_msg.lower():
            return jsonify({
                'error': 'duplicate_entry',
                'message': 'This entry already exists'
            }), 409

        return jsonify({
            'error': 'integrity_error',
            'message': 'Data integrity constraint violated'
        }), 400

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        metrics = get_metrics_service()
        if metrics:
            metrics.record_rate_limit_hit(request.endpoint)
        logger.warning("Rate limit exceeded", endpoint=request.endpoint, limit=str(e.description))
        return jsonify({
            'error': 'rate_limit_exceeded',
            'message': 'Trop de tentatives. Veuillez réessayer plus tard.',
            'limit': str(e.description)
        }), 429

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.name, 'message': e.description}), e.code
