# -*- coding: utf-8 -*-

import time

from flask import Blueprint, jsonify

from mastery import __version__

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET', 'HEAD'])
@health_bp.route('/healthz', methods=['GET', 'HEAD'])
def healthz():
    """Liveness check endpoint (available at both /health and /healthz)."""
    return jsonify({
        'status': 'healthy',
        'service': 'mastery-automation',
        'version': __version__,
        'timestamp': time.time()
    }), 200
