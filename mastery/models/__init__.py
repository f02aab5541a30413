# -*- coding: utf-8 -*-
from mastery.infra.db import db

from .contact import Contact
from .contact_list import ContactList, ContactListMember
from .contact_message import ContactMessage
from .contact_submission import ContactSubmission
from .email_template import EmailTemplate
from .form import Form, FormSubmission
from .workflow import Workflow
from .workflow_execution import WorkflowExecution, WorkflowTriggerClaim
