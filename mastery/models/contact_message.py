# -*- coding: utf-8 -*-
"""
Contact Message Model

Free-text messages left through the public contact form.
"""

from sqlalchemy import Column, String, DateTime

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat


class ContactMessage(db.Model):
    __tablename__ = "contact_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    message = Column(String(250), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "created_at": isoformat(self.created_at),
        }
