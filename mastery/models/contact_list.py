# -*- coding: utf-8 -*-
"""
Contact list models

Named lists of contacts (CRM segments) and the membership join table keyed
by (contact_id, list_id).
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat


class ContactList(db.Model):
    __tablename__ = "contact_lists"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text)

    members = relationship("ContactListMember", back_populates="contact_list", cascade="all, delete-orphan")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ContactList(id={self.id}, name='{self.name}')>"


class ContactListMember(db.Model):
    __tablename__ = "contact_list_members"
    __table_args__ = (
        UniqueConstraint("contact_id", "list_id", name="uq_contact_list_member"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    list_id = Column(String(36), ForeignKey("contact_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    contact = relationship("Contact", back_populates="memberships")
    contact_list = relationship("ContactList", back_populates="members")

    def __repr__(self):
        return f"<ContactListMember(contact_id={self.contact_id}, list_id={self.list_id})>"
