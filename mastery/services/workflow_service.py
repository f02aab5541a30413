'''
Workflow Service

Handles the business logic for managing workflow definitions.
'''

from typing import List, Optional

from sqlalchemy.orm import Session

from mastery.models.workflow import Workflow
from mastery.models.workflow_execution import WorkflowExecution
from mastery.schemas.workflow import WorkflowDefinition
from mastery.services.structured_logging import get_logger

logger = get_logger('mastery.workflows.admin')


class WorkflowService:
    def __init__(self, db: Session):
        self.db = db

    def create_workflow(self, definition: WorkflowDefinition) -> Workflow:
        workflow = Workflow(**definition.model_dump())
        self.db.add(workflow)
        self.db.commit()
        self.db.refresh(workflow)
        logger.info("Workflow created", workflow_id=workflow.id, trigger_type=workflow.trigger_type)
        return workflow

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self.db.get(Workflow, workflow_id)

    def list_workflows(self, status: Optional[str] = None, trigger_type: Optional[str] = None) -> List[Workflow]:
        query = self.db.query(Workflow)
        if status:
            query = query.filter(Workflow.status == status)
        if trigger_type:
            query = query.filter(Workflow.trigger_type == trigger_type)
        return query.order_by(Workflow.created_at.desc()).all()

    def update_workflow(self, workflow: Workflow, definition: WorkflowDefinition) -> Workflow:
        for key, value in definition.model_dump().items():
            setattr(workflow, key, value)
        self.db.commit()
        self.db.refresh(workflow)
        logger.info("Workflow updated", workflow_id=workflow.id)
        return workflow

    def set_status(self, workflow: Workflow, status: str) -> Workflow:
        workflow.status = status
        self.db.commit()
        self.db.refresh(workflow)
        logger.info("Workflow status changed", workflow_id=workflow.id, status=status)
        return workflow

    def delete_workflow(self, workflow: Workflow) -> None:
        workflow_id = workflow.id
        self.db.delete(workflow)
        self.db.commit()
        logger.info("Workflow deleted", workflow_id=workflow_id)

    def list_executions(self, workflow_id: str, status: Optional[str] = None,
                        limit: int = 50) -> List[WorkflowExecution]:
        query = self.db.query(WorkflowExecution).filter(WorkflowExecution.workflow_id == workflow_id)
        if status:
            query = query.filter(WorkflowExecution.status == status)
        return query.order_by(WorkflowExecution.started_at.desc()).limit(limit).all()
