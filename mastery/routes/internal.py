# -*- coding: utf-8 -*-
"""
Internal routes for the scheduler, protected by MASTERY_ADMIN_TOKEN.
"""

from flask import Blueprint, jsonify

from mastery.infra.auth import require_internal_token
from mastery.services.workflow_triggers import process_scheduled

internal_bp = Blueprint('internal', __name__, url_prefix='/internal')


@internal_bp.route('/workflows/process', methods=['POST'])
@require_internal_token
def process_workflows():
    """Scan inactivity workflows and resume due executions."""
    return jsonify(process_scheduled()), 200
