'''
Workflow Trigger Sources

Everything that decides *when* a workflow runs: form submissions, contact
creation, the inactivity scanner and the scheduled sweep. Trigger sources
never see runner failures as exceptions; each invocation is reported as an
outcome dict and logged.
'''

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mastery.database import db
from mastery.models.base import utcnow
from mastery.models.contact import Contact
from mastery.models.workflow import Workflow
from mastery.models.workflow_execution import WorkflowExecution, WorkflowTriggerClaim
from mastery.services.errors import ActionFailed, WorkflowError
from mastery.services.queue import enqueue
from mastery.services.structured_logging import get_logger
from mastery.services.workflow_runner import WorkflowRunner, build_runner

logger = get_logger('mastery.workflows.triggers')

DISPATCH_MODES = ('inline', 'queue')
REAL_TIME_TRIGGERS = ('form_submission', 'contact_created')


class WorkflowDispatcher:
    """Hands a trigger event to the runner, in process or through RQ."""

    def __init__(self, runner_factory: Callable[[], WorkflowRunner] = build_runner, mode: str = 'inline'):
        if mode not in DISPATCH_MODES:
            raise ValueError(f"Unknown dispatch mode: {mode}")
        self.runner_factory = runner_factory
        self.mode = mode

    def dispatch(self, workflow_id: str, contact_id: Optional[str] = None,
                 trigger_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.mode == 'queue':
            job = enqueue('mastery.jobs.workflow_jobs.run_workflow_job', workflow_id, contact_id, trigger_data)
            logger.info("Workflow queued", workflow_id=workflow_id, contact_id=contact_id, job_id=job.id)
            return {'workflow_id': workflow_id, 'queued': True, 'job_id': job.id}

        try:
            result = self.runner_factory().execute(workflow_id, contact_id, trigger_data)
        except ActionFailed as exc:
            logger.warning("Triggered workflow failed", workflow_id=workflow_id,
                           execution_id=exc.execution_id, error=exc.details)
            return {'workflow_id': workflow_id, 'success': False, 'execution_id': exc.execution_id,
                    'error': exc.message, 'details': exc.details}
        except WorkflowError as exc:
            logger.warning("Triggered workflow not run", workflow_id=workflow_id, error=exc.message)
            return {'workflow_id': workflow_id, 'success': False, 'error': exc.message}

        return {'workflow_id': workflow_id, 'success': True, **result.to_dict()}


def get_dispatcher() -> WorkflowDispatcher:
    return WorkflowDispatcher(build_runner, current_app.config.get('WORKFLOW_DISPATCH_MODE', 'inline'))


def _active_workflows(session: Session, trigger_type: str) -> List[Workflow]:
    return (session.query(Workflow)
            .filter(Workflow.status == 'active', Workflow.trigger_type == trigger_type)
            .order_by(Workflow.created_at)
            .all())


def trigger_form_workflows(form, submission, data: Dict[str, Any],
                           dispatcher: Optional[WorkflowDispatcher] = None,
                           session: Optional[Session] = None) -> int:
    """Run every active workflow listening on ``form``; returns how many were invoked."""
    session = session or db.session
    dispatcher = dispatcher or get_dispatcher()

    workflows = [w for w in _active_workflows(session, 'form_submission')
                 if (w.trigger_config or {}).get('form_id') == form.id]
    for workflow in workflows:
        trigger_data = {
            'type': 'form_submission',
            'form_id': form.id,
            'submission_id': submission.id if submission is not None else None,
            'submission_data': data,
            'data': data,
            'mapping_config': form.mapping_config or {},
        }
        outcome = dispatcher.dispatch(workflow.id, None, trigger_data)
        logger.info("Form workflow invoked", form_id=form.id, **outcome)
    return len(workflows)


def trigger_contact_created(contact: Contact, dispatcher: Optional[WorkflowDispatcher] = None,
                            session: Optional[Session] = None) -> int:
    session = session or db.session
    dispatcher = dispatcher or get_dispatcher()

    workflows = _active_workflows(session, 'contact_created')
    for workflow in workflows:
        outcome = dispatcher.dispatch(workflow.id, contact.id,
                                      {'type': 'contact_created', 'contact_id': contact.id})
        logger.info("Contact workflow invoked", contact_id=contact.id, **outcome)
    return len(workflows)


def inactivity_days(trigger_config: Optional[Dict[str, Any]], default: int) -> int:
    days = (trigger_config or {}).get('days')
    if isinstance(days, int) and not isinstance(days, bool) and days > 0:
        return days
    return default


class InactivityScanner:
    """
    Fires inactivity workflows for contacts untouched since the cutoff.

    Two guards stop a contact from being triggered twice in a window: the
    execution history check, and a claim row on
    (workflow, contact, window bucket) whose unique constraint makes
    concurrent scans race on an insert instead of a read.
    """

    def __init__(self, session: Session, dispatcher: WorkflowDispatcher, default_days: int = 7):
        self.db = session
        self.dispatcher = dispatcher
        self.default_days = default_days

    def scan(self, workflow: Workflow, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        days = inactivity_days(workflow.trigger_config, self.default_days)
        cutoff = now - timedelta(days=days)
        window_bucket = int(now.timestamp() // (days * 86400))

        contacts = (self.db.query(Contact)
                    .filter(Contact.status == 'active', Contact.updated_at < cutoff)
                    .order_by(Contact.updated_at)
                    .all())
        logger.info("Inactivity scan", workflow_id=workflow.id, days=days,
                    cutoff=cutoff.isoformat(), candidates=len(contacts))

        triggered, skipped = 0, 0
        for contact in contacts:
            contact_id = contact.id
            if self._executed_since(workflow.id, contact_id, cutoff):
                logger.debug("Workflow already executed recently", workflow_id=workflow.id, contact_id=contact_id)
                skipped += 1
                continue

            claim = self._claim(workflow.id, contact_id, window_bucket)
            if claim is None:
                skipped += 1
                continue

            outcome = self.dispatcher.dispatch(workflow.id, contact_id, {'type': 'inactivity', 'days': days})
            if outcome.get('execution_id'):
                claim.execution_id = outcome['execution_id']
                self.db.commit()
            triggered += 1

        return {'workflow_id': workflow.id, 'days': days, 'triggered': triggered, 'skipped': skipped}

    def _executed_since(self, workflow_id: str, contact_id: str, cutoff: datetime) -> bool:
        return (self.db.query(WorkflowExecution.id)
                .filter(WorkflowExecution.workflow_id == workflow_id,
                        WorkflowExecution.contact_id == contact_id,
                        WorkflowExecution.started_at >= cutoff)
                .first()) is not None

    def _claim(self, workflow_id: str, contact_id: str, window_bucket: int) -> Optional[WorkflowTriggerClaim]:
        claim = WorkflowTriggerClaim(workflow_id=workflow_id, contact_id=contact_id, window_bucket=window_bucket)
        self.db.add(claim)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Inactivity trigger already claimed", workflow_id=workflow_id,
                        contact_id=contact_id, window_bucket=window_bucket)
            return None
        return claim


def process_scheduled(now: Optional[datetime] = None, session: Optional[Session] = None,
                      dispatcher: Optional[WorkflowDispatcher] = None,
                      runner: Optional[WorkflowRunner] = None) -> Dict[str, Any]:
    """
    Scheduled sweep over every active workflow.

    Inactivity workflows are scanned; real-time triggers are only noted.
    Waiting executions whose resume time has passed are resumed as well.
    """
    now = now or utcnow()
    session = session or db.session
    dispatcher = dispatcher or get_dispatcher()
    scanner = InactivityScanner(session, dispatcher, current_app.config.get('INACTIVITY_DEFAULT_DAYS', 7))

    workflows = session.query(Workflow).filter(Workflow.status == 'active').order_by(Workflow.created_at).all()
    logger.info("Processing scheduled workflows", active_workflows=len(workflows))

    results = []
    for workflow in workflows:
        workflow_id = workflow.id
        entry = {'workflow_id': workflow_id, 'trigger_type': workflow.trigger_type}
        try:
            if workflow.trigger_type == 'inactivity':
                entry.update(scanner.scan(workflow, now))
                entry['status'] = 'processed'
            elif workflow.trigger_type in REAL_TIME_TRIGGERS:
                entry['status'] = 'real_time'
            else:
                entry['status'] = 'not_scheduled'
        except WorkflowError as exc:
            session.rollback()
            logger.error("Scheduled workflow processing failed", workflow_id=workflow_id, error=exc.message)
            entry.update(status='failed', error=exc.message)
        except Exception as exc:
            session.rollback()
            logger.exception("Scheduled workflow processing failed", workflow_id=workflow_id)
            entry.update(status='failed', error=str(exc))
        results.append(entry)

    runner = runner or build_runner(session)
    resumed = runner.resume_due(now)

    logger.info("Workflow processing completed", processed=len(results), resumed=len(resumed))
    return {'success': True, 'processed': len(results), 'results': results, 'resumed': resumed}
