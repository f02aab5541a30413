# -*- coding: utf-8 -*-
"""
Forms Route

Public endpoint receiving form posts. Depending on the form's action type a
post stores a submission, upserts a contact, or both; matching
form_submission workflows are fired afterwards.
"""

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from mastery.database import db
from mastery.models.form import Form, FormSubmission
from mastery.routes.responses import error_response, validation_details
from mastery.schemas.workflow import FormSubmitRequest
from mastery.services.contact_service import ContactService
from mastery.services.email_service import get_email_service
from mastery.services.errors import MissingEmail
from mastery.services.rate_limiter import limiter
from mastery.services.structured_logging import get_logger
from mastery.services.workflow_triggers import trigger_contact_created, trigger_form_workflows

logger = get_logger('mastery.routes.forms')

forms_bp = Blueprint("forms", __name__, url_prefix="/api/v1/forms")


@forms_bp.route("/submit", methods=["POST"])
@limiter.limit(lambda: current_app.config['LEAD_RATE_LIMIT'])
def submit_form():
    try:
        body = FormSubmitRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return error_response('formId et data sont requis', status_code=400, details=validation_details(exc))

    form = db.session.get(Form, body.form_id)
    if form is None or not form.is_active:
        logger.warning("Form not found", form_id=body.form_id)
        return error_response('Formulaire introuvable', status_code=404)

    data = body.data
    logger.info("Processing form submission", form_id=form.id, action_type=form.action_type)

    submission = None
    if form.stores_submission:
        email = data.get('email')
        submission = FormSubmission(form_id=form.id, data=data,
                                    email=email if isinstance(email, str) else None)
        db.session.add(submission)
        db.session.commit()
        logger.info("Submission created", form_id=form.id, submission_id=submission.id)

    contact, created = None, False
    if form.creates_contact:
        contacts = ContactService(db.session)
        try:
            contact, created = contacts.upsert_from_mapping(form, data)
        except MissingEmail as exc:
            return error_response(exc.message, status_code=400)
        if form.target_list_id:
            contacts.add_to_list(contact, form.target_list_id)

    if created:
        trigger_contact_created(contact)
    workflows_triggered = trigger_form_workflows(form, submission, data)

    if not get_email_service().send_admin_notification('form_submission', {
            'form_title': form.title,
            'first_name': contact.first_name if contact else data.get('first_name'),
            'last_name': contact.last_name if contact else data.get('last_name'),
            'email': contact.email if contact else data.get('email'),
            'phone_number': contact.phone if contact else data.get('phone'),
    }):
        logger.warning("Admin notification not sent", form_id=form.id)

    response = {
        'success': True,
        'submission': submission.to_dict() if submission else None,
        'workflows_triggered': workflows_triggered,
        'message': 'Formulaire soumis avec succès',
    }
    if contact is not None:
        response['contact'] = contact.to_dict()
    return jsonify(response), 200
