# -*- coding: utf-8 -*-
"""
Workflows Route

Runs workflows on demand and manages workflow definitions.
"""

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from mastery.database import db
from mastery.infra.auth import require_admin, require_admin_or_internal
from mastery.routes.responses import error_response, validation_details
from mastery.schemas.workflow import ExecuteWorkflowRequest, WorkflowDefinition, WorkflowStatusUpdate
from mastery.services.errors import ActionFailed, WorkflowError, WorkflowNotFound
from mastery.services.structured_logging import get_logger
from mastery.services.workflow_runner import build_runner
from mastery.services.workflow_service import WorkflowService

logger = get_logger('mastery.routes.workflows')

workflows_bp = Blueprint("workflows", __name__, url_prefix="/api/v1/workflows")

MAX_EXECUTIONS_PAGE = 200


@workflows_bp.route("/execute", methods=["POST"])
@require_admin_or_internal
def execute_workflow():
    """Run a workflow now and report the execution outcome."""
    try:
        body = ExecuteWorkflowRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return error_response('validation_error', 'workflowId est requis', 400, validation_details(exc))

    try:
        result = build_runner().execute(body.workflow_id, body.contact_id, body.trigger_data)
    except WorkflowNotFound as exc:
        return error_response(exc.message, status_code=404)
    except ActionFailed as exc:
        return error_response(exc.message, status_code=500, details=exc.details,
                              execution_id=exc.execution_id)
    except WorkflowError as exc:
        logger.error("Workflow execution error", workflow_id=body.workflow_id, error=exc.message)
        return error_response(exc.message, status_code=500)

    return jsonify({'success': True, **result.to_dict()}), 200


@workflows_bp.route("", methods=["GET"])
@require_admin
def list_workflows():
    workflows = WorkflowService(db.session).list_workflows(
        status=request.args.get('status'),
        trigger_type=request.args.get('trigger_type'),
    )
    return jsonify({'workflows': [w.to_dict() for w in workflows], 'count': len(workflows)})


@workflows_bp.route("", methods=["POST"])
@require_admin
def create_workflow():
    try:
        definition = WorkflowDefinition.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return error_response('validation_error', 'Définition de workflow invalide', 400, validation_details(exc))

    workflow = WorkflowService(db.session).create_workflow(definition)
    return jsonify(workflow.to_dict()), 201


def _get_or_404(service: WorkflowService, workflow_id: str):
    workflow = service.get_workflow(workflow_id)
    if workflow is None:
        return None, error_response('Workflow introuvable', status_code=404)
    return workflow, None


@workflows_bp.route("/<workflow_id>", methods=["GET"])
@require_admin
def get_workflow(workflow_id):
    service = WorkflowService(db.session)
    workflow, error = _get_or_404(service, workflow_id)
    if error:
        return error
    return jsonify(workflow.to_dict())


@workflows_bp.route("/<workflow_id>", methods=["PUT"])
@require_admin
def update_workflow(workflow_id):
    service = WorkflowService(db.session)
    workflow, error = _get_or_404(service, workflow_id)
    if error:
        return error

    try:
        definition = WorkflowDefinition.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return error_response('validation_error', 'Définition de workflow invalide', 400, validation_details(exc))

    workflow = service.update_workflow(workflow, definition)
    return jsonify(workflow.to_dict())


@workflows_bp.route("/<workflow_id>", methods=["DELETE"])
@require_admin
def delete_workflow(workflow_id):
    service = WorkflowService(db.session)
    workflow, error = _get_or_404(service, workflow_id)
    if error:
        return error
    service.delete_workflow(workflow)
    return jsonify({'success': True}), 200


@workflows_bp.route("/<workflow_id>/status", methods=["POST"])
@require_admin
def set_workflow_status(workflow_id):
    service = WorkflowService(db.session)
    workflow, error = _get_or_404(service, workflow_id)
    if error:
        return error

    try:
        update = WorkflowStatusUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return error_response('validation_error', 'Statut invalide', 400, validation_details(exc))

    workflow = service.set_status(workflow, update.status)
    return jsonify(workflow.to_dict())


@workflows_bp.route("/<workflow_id>/executions", methods=["GET"])
@require_admin
def list_executions(workflow_id):
    service = WorkflowService(db.session)
    workflow, error = _get_or_404(service, workflow_id)
    if error:
        return error

    limit = request.args.get('limit', default=50, type=int)
    limit = max(1, min(limit, MAX_EXECUTIONS_PAGE))
    executions = service.list_executions(workflow.id, status=request.args.get('status'), limit=limit)
    return jsonify({'executions': [e.to_dict() for e in executions], 'count': len(executions)})
