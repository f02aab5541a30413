'''
Workflow Model

An automation definition: a trigger condition plus an ordered list of
actions. Only workflows with status "active" run.
'''

from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat

TRIGGER_TYPES = ("form_submission", "contact_created", "inactivity", "manual")
WORKFLOW_STATUSES = ("active", "inactive", "draft")


class Workflow(db.Model):
    __tablename__ = "workflows"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text)

    status = Column(String(20), nullable=False, default="draft", index=True)
    trigger_type = Column(String(50), nullable=False, index=True)
    trigger_config = Column(JSON, nullable=False, default=dict)
    # ordered list of {type, config, delay_minutes?}
    actions = Column(JSON, nullable=False, default=list)

    executions = relationship("WorkflowExecution", back_populates="workflow", cascade="all, delete-orphan")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "trigger_type": self.trigger_type,
            "trigger_config": self.trigger_config or {},
            "actions": self.actions or [],
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Workflow(id={self.id}, name='{self.name}')>"
