# -*- coding: utf-8 -*-
"""
Contact Submission Model

Raw lead-capture posts from the landing page sign-up form.
"""

from sqlalchemy import Column, String, DateTime

from mastery.database import db
from mastery.models.base import new_id, utcnow, isoformat


class ContactSubmission(db.Model):
    __tablename__ = "contact_submissions"

    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone_number = Column(String(20), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "created_at": isoformat(self.created_at),
        }
