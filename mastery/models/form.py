# -*- coding: utf-8 -*-
"""
Form models

Public forms and their submissions. A form's action_type decides whether a
post stores a submission row, upserts a contact, or both; mapping_config maps
submitted field ids to contact columns.
"""

from sqlalchemy import Boolean, Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat

FORM_ACTION_TYPES = ("submission", "contact", "both")


class Form(db.Model):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    fields = Column(JSON, nullable=False, default=list)

    action_type = Column(String(20), nullable=False, default="submission")
    mapping_config = Column(JSON)
    target_list_id = Column(String(36), ForeignKey("contact_lists.id", ondelete="SET NULL"))
    is_active = Column(Boolean, nullable=False, default=True)

    submissions = relationship("FormSubmission", back_populates="form", cascade="all, delete-orphan")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def stores_submission(self) -> bool:
        return self.action_type in ("submission", "both")

    @property
    def creates_contact(self) -> bool:
        return self.action_type in ("contact", "both")

    def __repr__(self):
        return f"<Form(id={self.id}, title='{self.title}')>"


class FormSubmission(db.Model):
    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True, default=new_id)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    form = relationship("Form", back_populates="submissions")

    data = Column(JSON, nullable=False, default=dict)
    email = Column(String(255))
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "form_id": self.form_id,
            "data": self.data or {},
            "email": self.email,
            "submitted_at": isoformat(self.submitted_at),
        }
