# -*- coding: utf-8 -*-
"""
Email Template Model

Reusable subject + HTML body with {placeholder} tokens, rendered at send time.
"""

from sqlalchemy import Boolean, Column, String, Text, DateTime, JSON

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat


class EmailTemplate(db.Model):
    __tablename__ = "email_templates"

    id = Column(String(36), primary_key=True, default=new_id)
    template_key = Column(String(100), nullable=False, unique=True)
    subject = Column(String(255), nullable=False)
    html_body = Column(Text)
    preview_text = Column(String(255))
    variables = Column(JSON)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "template_key": self.template_key,
            "subject": self.subject,
            "preview_text": self.preview_text,
            "variables": self.variables or [],
            "is_active": self.is_active,
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<EmailTemplate(id={self.id}, key='{self.template_key}')>"
