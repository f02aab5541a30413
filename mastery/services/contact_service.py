'''
Contact Service

Resolves, creates and updates contacts. Contacts are addressed by email:
every write path goes through ``upsert`` so replaying the same payload
updates the existing row instead of duplicating it.
'''

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from mastery.models.contact import Contact
from mastery.models.contact_list import ContactListMember
from mastery.services.errors import MissingEmail
from mastery.services.structured_logging import get_logger

logger = get_logger('mastery.contacts')

EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')

EMAIL_KEYS = ('email', 'email_address', 'mail')
FIELD_SYNONYMS = {
    'first_name': ('first_name', 'prenom', 'firstName'),
    'last_name': ('last_name', 'nom', 'lastName'),
    'phone': ('phone', 'telephone'),
    'notes': ('notes', 'message'),
}
# contact columns a form mapping may write to
MAPPABLE_COLUMNS = ('email', 'first_name', 'last_name', 'phone', 'notes')


def _first_present(data: Dict[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            value = value.strip()
        if value:
            return value
    return None


class ContactService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Payload normalization
    # ------------------------------------------------------------------
    @staticmethod
    def raw_form_data(trigger_data: Dict[str, Any]) -> Dict[str, Any]:
        raw = trigger_data.get('submission_data') or trigger_data.get('data') or trigger_data or {}
        return raw if isinstance(raw, dict) else {}

    @staticmethod
    def normalize_form_data(raw: Dict[str, Any], mapping: Optional[Dict[str, str]]) -> Dict[str, Any]:
        """Overlay mapped keys (field id -> canonical key) on the raw data."""
        if not mapping or not isinstance(mapping, dict):
            return dict(raw)
        mapped = {}
        for field_id, target_key in mapping.items():
            value = raw.get(field_id)
            if value is not None and value != '':
                mapped[target_key] = value
        return {**raw, **mapped}

    @staticmethod
    def resolve_email(form_data: Dict[str, Any], raw: Dict[str, Any]) -> Optional[str]:
        email = _first_present(form_data, EMAIL_KEYS)
        if not email:
            for value in raw.values():
                if isinstance(value, str) and EMAIL_PATTERN.search(value):
                    email = value
                    break
        return email.strip() if isinstance(email, str) else email

    def build_contact_fields(self, trigger_data: Dict[str, Any],
                             mapping: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        raw = self.raw_form_data(trigger_data)
        if mapping is None:
            mapping = trigger_data.get('mapping_config')
        form_data = self.normalize_form_data(raw, mapping)

        email = self.resolve_email(form_data, raw)
        if not email:
            raise MissingEmail()

        fields = {'email': email}
        for column, synonyms in FIELD_SYNONYMS.items():
            value = _first_present(form_data, synonyms)
            if value:
                fields[column] = value

        fields['metadata'] = {
            'workflow_created': True,
            'form_submission_id': trigger_data.get('submission_id'),
            'submission_date': datetime.now(timezone.utc).isoformat(),
            'raw_form_data': raw,
        }
        return fields

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------
    def get_by_email(self, email: str) -> Optional[Contact]:
        return self.db.query(Contact).filter(Contact.email == email).first()

    def upsert(self, fields: Dict[str, Any], source: str) -> Tuple[Contact, bool]:
        """Insert or update the contact addressed by ``fields['email']``."""
        fields = dict(fields)
        metadata = fields.pop('metadata', None) or {}
        contact = self.get_by_email(fields['email'])

        if contact is not None:
            for column, value in fields.items():
                if column != 'email':
                    setattr(contact, column, value)
            contact.status = 'active'
            contact.meta = {**(contact.meta or {}), **metadata}
            contact.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            logger.info("Contact updated", contact_id=contact.id)
            return contact, False

        contact = Contact(source=source, status='active', tags=[], meta=metadata, **fields)
        self.db.add(contact)
        self.db.commit()
        logger.info("Contact created", contact_id=contact.id, source=source)
        return contact, True

    def create_from_trigger(self, trigger_data: Optional[Dict[str, Any]],
                            mapping: Optional[Dict[str, str]] = None) -> Tuple[Contact, bool]:
        fields = self.build_contact_fields(trigger_data or {}, mapping)
        return self.upsert(fields, source='workflow_automation')

    def upsert_from_mapping(self, form, data: Dict[str, Any]) -> Tuple[Contact, bool]:
        """Contact upsert used by the form handler: only mapped fields are copied."""
        fields = {}
        for field_id, column in (form.mapping_config or {}).items():
            if column in MAPPABLE_COLUMNS and data.get(field_id):
                fields[column] = data[field_id]

        if not fields.get('email'):
            raise MissingEmail("Email est requis pour créer un contact")
        fields['email'] = str(fields['email']).strip()

        fields['metadata'] = {
            'form_id': form.id,
            'form_title': form.title,
            'submission_date': datetime.now(timezone.utc).isoformat(),
            'raw_data': data,
        }
        return self.upsert(fields, source=f"form_{form.id}")

    # ------------------------------------------------------------------
    # Tags and lists
    # ------------------------------------------------------------------
    def add_tag(self, contact: Contact, tag: str) -> bool:
        current = list(contact.tags or [])
        if tag in current:
            logger.debug("Tag already present", contact_id=contact.id, tag=tag)
            return False
        # reassign so the JSON column is flagged dirty
        contact.tags = current + [tag]
        self.db.commit()
        return True

    def remove_tag(self, contact: Contact, tag: str) -> bool:
        current = list(contact.tags or [])
        if tag not in current:
            return False
        contact.tags = [t for t in current if t != tag]
        self.db.commit()
        return True

    def add_to_list(self, contact: Contact, list_id: str) -> bool:
        existing = (self.db.query(ContactListMember)
                    .filter(ContactListMember.contact_id == contact.id,
                            ContactListMember.list_id == list_id)
                    .first())
        if existing:
            logger.debug("Contact already in list", contact_id=contact.id, list_id=list_id)
            return False
        self.db.add(ContactListMember(contact_id=contact.id, list_id=list_id))
        self.db.commit()
        return True

    def remove_from_list(self, contact: Contact, list_id: str) -> int:
        removed = (self.db.query(ContactListMember)
                   .filter(ContactListMember.contact_id == contact.id,
                           ContactListMember.list_id == list_id)
                   .delete(synchronize_session=False))
        self.db.commit()
        return removed
