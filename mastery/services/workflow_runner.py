'''
Workflow Runner

Executes a workflow's action list against one trigger event.

Actions run strictly in declared order, one at a time. Every outcome is
appended to the execution's ``actions_completed`` log and persisted as soon
as it is known, so a crash mid-run still leaves an accurate audit trail.
The first failing action aborts the run (fail-fast, no retry).

An action with a positive delay suspends the execution: the row is marked
``waiting`` with the index of the next action and a ``resume_at`` time, and
``resume`` / ``resume_due`` pick it up later from that index.
'''

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mastery.database import db
from mastery.models.base import utcnow, isoformat
from mastery.models.contact import Contact
from mastery.models.workflow import Workflow
from mastery.models.workflow_execution import (
    COMPLETED,
    FAILED,
    PENDING,
    WAITING,
    WorkflowExecution,
)
from mastery.schemas.actions import action_type_of, parse_action
from mastery.services.email_service import get_email_service
from mastery.services.errors import (
    ActionFailed,
    ExecutionNotFound,
    WorkflowError,
    WorkflowNotFound,
)
from mastery.services.metrics import get_metrics_service
from mastery.services.structured_logging import get_logger
from mastery.services.workflow_actions import ActionExecutor

logger = get_logger('mastery.workflows.runner')


@dataclass
class ExecutionResult:
    execution_id: str
    status: str
    actions_completed: int
    resume_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'execution_id': self.execution_id,
            'status': self.status,
            'actions_completed': self.actions_completed,
        }
        if self.resume_at is not None:
            data['resume_at'] = isoformat(self.resume_at)
        return data


class WorkflowRunner:
    def __init__(self, db: Session, executor: ActionExecutor, delays_enabled: bool = True, metrics=None):
        self.db = db
        self.executor = executor
        self.delays_enabled = delays_enabled
        self.metrics = metrics

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def execute(self, workflow_id: str, contact_id: Optional[str] = None,
                trigger_data: Optional[Dict[str, Any]] = None) -> ExecutionResult:
        """
        Run an active workflow from its first action.

        Raises:
            WorkflowNotFound: the workflow is missing or not active
            ActionFailed: an action failed; the execution is already marked failed
        """
        workflow = self.db.get(Workflow, workflow_id)
        if workflow is None or not workflow.is_active:
            raise WorkflowNotFound()

        trigger_data = trigger_data or {}
        contact = self._load_contact(contact_id)

        execution = WorkflowExecution(
            workflow_id=workflow.id,
            contact_id=contact.id if contact else None,
            trigger_data=trigger_data,
            status=PENDING,
            actions_completed=[],
        )
        self.db.add(execution)
        self.db.commit()
        logger.log_workflow_event('started', workflow.id, execution.id,
                                  contact_id=execution.contact_id,
                                  trigger_type=trigger_data.get('type'))

        if contact is None and (trigger_data.get('submission_data') or trigger_data.get('data')):
            contact = self._auto_create_contact(execution, trigger_data)

        return self._run_actions(workflow, execution, contact, start=0)

    def resume(self, execution_id: str) -> ExecutionResult:
        """Continue a waiting execution from its next action."""
        # conditional update so two sweepers never resume the same row
        claimed = (self.db.query(WorkflowExecution)
                   .filter(WorkflowExecution.id == execution_id,
                           WorkflowExecution.status == WAITING)
                   .update({WorkflowExecution.status: PENDING}, synchronize_session=False))
        self.db.commit()
        if not claimed:
            raise ExecutionNotFound()

        execution = self.db.get(WorkflowExecution, execution_id)
        self.db.refresh(execution)
        start = execution.next_action_index or 0
        execution.next_action_index = None
        execution.resume_at = None
        self.db.commit()

        workflow = self.db.get(Workflow, execution.workflow_id)
        if workflow is None or not workflow.is_active:
            error = WorkflowNotFound()
            execution.status = FAILED
            execution.error_message = error.message
            execution.completed_at = utcnow()
            self.db.commit()
            self._record_execution(FAILED)
            logger.log_workflow_event('failed', execution.workflow_id, execution.id, error=error.message)
            raise error

        logger.log_workflow_event('resumed', workflow.id, execution.id, next_action_index=start)
        return self._run_actions(workflow, execution, execution.contact, start=start, delay_served=start)

    def resume_due(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Resume every waiting execution whose resume time has passed."""
        now = now or utcnow()
        due_ids = [row.id for row in (
            self.db.query(WorkflowExecution.id)
            .filter(WorkflowExecution.status == WAITING,
                    WorkflowExecution.resume_at <= now)
            .order_by(WorkflowExecution.resume_at)
            .all()
        )]

        results = []
        for execution_id in due_ids:
            try:
                result = self.resume(execution_id)
                results.append(result.to_dict())
            except ActionFailed as exc:
                results.append({'execution_id': execution_id, 'status': FAILED,
                                'error': f"{exc.message}: {exc.details}"})
            except WorkflowError as exc:
                results.append({'execution_id': execution_id, 'status': FAILED, 'error': exc.message})
        if results:
            logger.info("Resumed waiting executions", count=len(results))
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _load_contact(self, contact_id: Optional[str]) -> Optional[Contact]:
        if not contact_id:
            return None
        try:
            contact = self.db.get(Contact, contact_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Failed to load contact", contact_id=contact_id, error=str(exc))
            return None
        if contact is None:
            logger.warning("Contact not found", contact_id=contact_id)
        return contact

    def _auto_create_contact(self, execution: WorkflowExecution,
                             trigger_data: Dict[str, Any]) -> Optional[Contact]:
        try:
            contact, _ = self.executor.contacts.create_from_trigger(trigger_data)
        except WorkflowError as exc:
            logger.warning("Automatic contact creation failed", execution_id=execution.id, error=exc.message)
            return None
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Automatic contact creation failed", execution_id=execution.id, error=str(exc))
            return None

        execution.contact_id = contact.id
        self.db.commit()
        logger.info("Contact created automatically", execution_id=execution.id, contact_id=contact.id)
        return contact

    def _run_actions(self, workflow: Workflow, execution: WorkflowExecution, contact: Optional[Contact],
                     start: int, delay_served: Optional[int] = None) -> ExecutionResult:
        outcomes = list(execution.actions_completed or [])
        raw_actions = list(workflow.actions or [])
        trigger_data = execution.trigger_data or {}

        for index in range(start, len(raw_actions)):
            raw = raw_actions[index]
            action_type = action_type_of(raw) or 'unknown'
            try:
                action = parse_action(raw)
                delay = action.delay()
                if delay > 0 and index != delay_served:
                    if self.delays_enabled:
                        return self._suspend(workflow, execution, index, delay)
                    logger.info("Action delay ignored", execution_id=execution.id,
                                action=action_type, delay_minutes=delay)
                contact = self.executor.run(action, contact, trigger_data)
            except WorkflowError as exc:
                error = exc.message
            except SQLAlchemyError as exc:
                self.db.rollback()
                error = str(exc)
            except Exception as exc:
                logger.exception("Unexpected action error", execution_id=execution.id, action=action_type)
                self.db.rollback()
                error = str(exc) or exc.__class__.__name__
            else:
                outcomes.append({'action': action_type, 'status': COMPLETED, 'timestamp': utcnow().isoformat()})
                execution.actions_completed = list(outcomes)
                if contact is not None:
                    execution.contact_id = contact.id
                self.db.commit()
                self._record_action(action_type, COMPLETED)
                logger.log_action_event(action_type, index, True, execution_id=execution.id)
                continue

            outcomes.append({'action': action_type, 'status': FAILED, 'error': error,
                             'timestamp': utcnow().isoformat()})
            self._fail(workflow, execution, outcomes, index, action_type, error)

        execution.status = COMPLETED
        execution.completed_at = utcnow()
        self.db.commit()
        self._record_execution(COMPLETED)
        logger.log_workflow_event('completed', workflow.id, execution.id, actions_completed=len(outcomes))
        return ExecutionResult(execution.id, COMPLETED, len(outcomes))

    def _suspend(self, workflow: Workflow, execution: WorkflowExecution, index: int, delay: int) -> ExecutionResult:
        resume_at = utcnow() + timedelta(minutes=delay)
        execution.status = WAITING
        execution.next_action_index = index
        execution.resume_at = resume_at
        self.db.commit()
        self._record_execution(WAITING)
        logger.log_workflow_event('suspended', workflow.id, execution.id,
                                  next_action_index=index, resume_at=resume_at.isoformat())
        return ExecutionResult(execution.id, WAITING, len(execution.actions_completed or []), resume_at)

    def _fail(self, workflow: Workflow, execution: WorkflowExecution, outcomes: List[Dict[str, Any]],
              index: int, action_type: str, error: str) -> None:
        execution.actions_completed = list(outcomes)
        execution.status = FAILED
        execution.error_message = f"Action {index + 1} failed: {error}"
        execution.completed_at = utcnow()
        self.db.commit()
        self._record_action(action_type, FAILED)
        self._record_execution(FAILED)
        logger.log_action_event(action_type, index, False, execution_id=execution.id, error=error)
        logger.log_workflow_event('failed', workflow.id, execution.id, error=execution.error_message)
        raise ActionFailed(index, action_type, error, execution.id)

    def _record_action(self, action_type: str, status: str) -> None:
        if self.metrics:
            self.metrics.record_action(action_type, status)

    def _record_execution(self, status: str) -> None:
        if self.metrics:
            self.metrics.record_execution(status)


def build_runner(session: Optional[Session] = None) -> WorkflowRunner:
    """Runner wired to the current app's session, email service and metrics."""
    session = session or db.session
    executor = ActionExecutor(session, get_email_service())
    return WorkflowRunner(
        session,
        executor,
        delays_enabled=current_app.config.get('WORKFLOW_DELAYS_ENABLED', True),
        metrics=get_metrics_service(),
    )
