'''
Workflow Action Executors

One handler per action variant. Each handler takes the typed action, the
current contact and the trigger payload, performs its side effect and
returns the contact the following actions should operate on.
'''

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from mastery.models.contact import Contact
from mastery.models.email_template import EmailTemplate
from mastery.schemas.actions import (
    AddTagAction,
    AddToListAction,
    CreateContactAction,
    RemoveFromListAction,
    RemoveTagAction,
    SendEmailAction,
    SendNotificationAction,
    WaitAction,
)
from mastery.services.contact_service import ContactService
from mastery.services.errors import EmailDeliveryError, MissingContact, TemplateNotFound
from mastery.services.structured_logging import get_logger
from mastery.services.template_renderer import render_for_contact

logger = get_logger('mastery.workflows.actions')


class ActionExecutor:
    def __init__(self, db: Session, email_service):
        self.db = db
        self.email_service = email_service
        self.contacts = ContactService(db)
        self.handlers = {
            CreateContactAction: self.create_contact,
            SendEmailAction: self.send_email,
            AddToListAction: self.add_to_list,
            RemoveFromListAction: self.remove_from_list,
            AddTagAction: self.add_tag,
            RemoveTagAction: self.remove_tag,
            SendNotificationAction: self.send_notification,
            WaitAction: self.wait,
        }

    def run(self, action, contact: Optional[Contact], trigger_data: Dict[str, Any]) -> Optional[Contact]:
        if action.requires_contact and contact is None:
            raise MissingContact(action.contact_purpose)
        handler = self.handlers[type(action)]
        return handler(action, contact, trigger_data)

    def create_contact(self, action: CreateContactAction, contact, trigger_data):
        created, is_new = self.contacts.create_from_trigger(trigger_data, action.config.mapping_config)
        logger.info("Contact set as current contact", contact_id=created.id, created=is_new)
        return created

    def send_email(self, action: SendEmailAction, contact, trigger_data):
        template = self.db.get(EmailTemplate, action.config.template_id)
        if template is None:
            raise TemplateNotFound()

        subject, html_body = render_for_contact(template.subject, template.html_body, contact)
        if not self.email_service.send_email(contact.email, subject, html_body):
            raise EmailDeliveryError(contact.email)
        logger.info("Workflow email sent", contact_id=contact.id, template_id=template.id)
        return contact

    def add_to_list(self, action: AddToListAction, contact, trigger_data):
        self.contacts.add_to_list(contact, action.config.list_id)
        return contact

    def remove_from_list(self, action: RemoveFromListAction, contact, trigger_data):
        self.contacts.remove_from_list(contact, action.config.list_id)
        return contact

    def add_tag(self, action: AddTagAction, contact, trigger_data):
        self.contacts.add_tag(contact, action.config.tag)
        return contact

    def remove_tag(self, action: RemoveTagAction, contact, trigger_data):
        self.contacts.remove_tag(contact, action.config.tag)
        return contact

    def send_notification(self, action: SendNotificationAction, contact, trigger_data):
        recipient = action.config.recipient or self.email_service.admin_email
        if not self.email_service.send_workflow_notification(contact, action.config.message, recipient):
            raise EmailDeliveryError(recipient or 'ADMIN_EMAIL')
        return contact

    def wait(self, action: WaitAction, contact, trigger_data):
        # the delay itself is handled by the runner
        return contact
