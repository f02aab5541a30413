# -*- coding: utf-8 -*-
"""
Contact Model

A lead or customer, uniquely addressed by email. Workflow actions operate on
contacts: tagging, list membership and emails.
"""

from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat


class Contact(db.Model):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    phone = Column(String(50))
    notes = Column(Text)
    tags = Column(JSON, nullable=False, default=list)

    # active, unsubscribed, bounced, archived
    status = Column(String(20), nullable=False, default="active", index=True)
    source = Column(String(100), nullable=False, default="manual")
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True)

    memberships = relationship("ContactListMember", back_populates="contact", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "notes": self.notes,
            "tags": list(self.tags or []),
            "status": self.status,
            "source": self.source,
            "metadata": self.meta or {},
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Contact(id={self.id}, email='{self.email}')>"
