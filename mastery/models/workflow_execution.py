# -*- coding: utf-8 -*-

"""
Workflow Execution Models

WorkflowExecution is the audit record of one run of a workflow against a
trigger event. WorkflowTriggerClaim reserves a (workflow, contact, window)
slot so scheduled triggers fire at most once per window.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat

PENDING = "pending"
WAITING = "waiting"
COMPLETED = "completed"
FAILED = "failed"


class WorkflowExecution(db.Model):
    __tablename__ = "workflow_executions"

    id = Column(String(36), primary_key=True, default=new_id)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    workflow = relationship("Workflow", back_populates="executions")

    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), index=True)
    contact = relationship("Contact")

    trigger_data = Column(JSON, nullable=False, default=dict)

    # pending, waiting, completed, failed
    status = Column(String(20), nullable=False, default=PENDING, index=True)
    actions_completed = Column(JSON, nullable=False, default=list)
    error_message = Column(Text)

    # deferred actions
    next_action_index = Column(Integer)
    resume_at = Column(DateTime(timezone=True), index=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True))

    def to_dict(self):
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "contact_id": self.contact_id,
            "trigger_data": self.trigger_data or {},
            "status": self.status,
            "actions_completed": list(self.actions_completed or []),
            "error_message": self.error_message,
            "next_action_index": self.next_action_index,
            "resume_at": isoformat(self.resume_at),
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
        }

    def __repr__(self):
        return f"<WorkflowExecution(id={self.id}, status=\"{self.status}\")>"


class WorkflowTriggerClaim(db.Model):
    __tablename__ = "workflow_trigger_claims"
    __table_args__ = (
        UniqueConstraint("workflow_id", "contact_id", "window_bucket", name="uq_workflow_trigger_claim"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    window_bucket = Column(Integer, nullable=False)
    execution_id = Column(String(36))
    claimed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return (f"<WorkflowTriggerClaim(workflow_id={self.workflow_id}, "
                f"contact_id={self.contact_id}, window_bucket={self.window_bucket})>")
