# mastery/jobs/workflow_jobs.py
"""
RQ jobs for workflow execution.

Workers import this module by dotted path; each job pushes an app context
on a lazily created app so it gets the same config, session and email
service as the web process.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from mastery.services.errors import ActionFailed, WorkflowError
from mastery.services.structured_logging import get_logger

logger = get_logger('mastery.jobs.workflows')

# We'll lazy-create the Flask app only when a job first needs it.
_APP_SINGLETON = None


def _get_app():
    """Create (once) and return the Flask app for DB work inside a job."""
    global _APP_SINGLETON
    if _APP_SINGLETON is None:
        from mastery.factory import create_app  # import here to avoid circulars
        _APP_SINGLETON = create_app()
    return _APP_SINGLETON


def _current_job_id() -> Optional[str]:
    from rq import get_current_job
    job = get_current_job()
    return job.id if job else None


def run_workflow_job(workflow_id: str, contact_id: Optional[str] = None,
                     trigger_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Execute one workflow for a queued trigger event."""
    from mastery.services.workflow_runner import build_runner

    with _get_app().app_context():
        job_id = _current_job_id()
        try:
            result = build_runner().execute(workflow_id, contact_id, trigger_data)
        except ActionFailed as exc:
            logger.warning("Queued workflow failed", job_id=job_id, workflow_id=workflow_id,
                           execution_id=exc.execution_id, error=exc.details)
            return {'success': False, 'execution_id': exc.execution_id,
                    'error': exc.message, 'details': exc.details}
        except WorkflowError as exc:
            logger.warning("Queued workflow not run", job_id=job_id, workflow_id=workflow_id, error=exc.message)
            return {'success': False, 'error': exc.message}
        return {'success': True, **result.to_dict()}


def resume_execution_job(execution_id: str) -> Dict[str, Any]:
    """Continue a waiting execution."""
    from mastery.services.workflow_runner import build_runner

    with _get_app().app_context():
        try:
            result = build_runner().resume(execution_id)
        except ActionFailed as exc:
            return {'success': False, 'execution_id': execution_id,
                    'error': exc.message, 'details': exc.details}
        except WorkflowError as exc:
            logger.warning("Execution not resumed", execution_id=execution_id, error=exc.message)
            return {'success': False, 'execution_id': execution_id, 'error': exc.message}
        return {'success': True, **result.to_dict()}


def process_scheduled_job() -> Dict[str, Any]:
    """Scheduled sweep: inactivity scans plus due resumptions."""
    from mastery.services.workflow_triggers import process_scheduled

    with _get_app().app_context():
        return process_scheduled()
