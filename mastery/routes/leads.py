# -*- coding: utf-8 -*-
"""
Public lead capture routes: the landing page sign-up form and the contact
form. Both accept an optional reCAPTCHA token.
"""
import re

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from mastery.database import db
from mastery.models.contact_message import ContactMessage
from mastery.models.contact_submission import ContactSubmission
from mastery.routes.responses import error_response
from mastery.schemas.leads import ContactMessageSchema, ContactSubmissionSchema
from mastery.services.email_service import get_email_service
from mastery.services.rate_limiter import limiter
from mastery.services.recaptcha import verify_recaptcha
from mastery.services.structured_logging import get_logger

logger = get_logger('mastery.routes.leads')

leads_bp = Blueprint("leads", __name__, url_prefix="/api/v1")

HTML_TAG_PATTERN = re.compile(r'<[^>]*>')


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for value in messages.values():
            return _first_message(value)
    if isinstance(messages, list) and messages:
        return _first_message(messages[0])
    return str(messages)


def _strip_html(value: str) -> str:
    return HTML_TAG_PATTERN.sub('', value).strip()


def _recaptcha_rejected(payload) -> bool:
    """A token that was sent must verify; posts without one are let through."""
    token = payload.get('recaptchaToken') if isinstance(payload, dict) else None
    if not token:
        return False
    if verify_recaptcha(token, request.remote_addr):
        return False
    logger.info("Invalid reCAPTCHA token", path=request.path)
    return True


def _recaptcha_error():
    return error_response('Vérification reCAPTCHA échouée. Veuillez réessayer.', status_code=400)


@leads_bp.route("/contact-submissions", methods=["POST"])
@limiter.limit(lambda: current_app.config['LEAD_RATE_LIMIT'])
def create_contact_submission():
    payload = request.get_json(silent=True) or {}
    if _recaptcha_rejected(payload):
        return _recaptcha_error()

    try:
        data = ContactSubmissionSchema().load(payload)
    except ValidationError as err:
        return error_response(_first_message(err.messages), status_code=400, details=err.messages)

    submission = ContactSubmission(
        first_name=data['first_name'].strip(),
        last_name=data['last_name'].strip(),
        email=data['email'].strip().lower(),
        phone_number=(data.get('phone_number') or '').strip(),
    )
    db.session.add(submission)
    db.session.commit()
    logger.info("Contact submission stored", submission_id=submission.id)

    email_service = get_email_service()
    if not email_service.send_lead_confirmation(submission.first_name, submission.email):
        logger.warning("Lead confirmation email not sent", submission_id=submission.id)
    if not email_service.send_admin_notification('contact_submission', submission.to_dict()):
        logger.warning("Admin notification not sent", submission_id=submission.id)

    return jsonify({
        'success': True,
        'message': 'Votre demande a été enregistrée avec succès'
    }), 200


@leads_bp.route("/contact-messages", methods=["POST"])
@limiter.limit(lambda: current_app.config['CONTACT_MESSAGE_RATE_LIMIT'])
def create_contact_message():
    payload = request.get_json(silent=True) or {}
    if _recaptcha_rejected(payload):
        return _recaptcha_error()

    try:
        data = ContactMessageSchema().load(payload)
    except ValidationError as err:
        return error_response(_first_message(err.messages), status_code=400, details=err.messages)

    name, message = _strip_html(data['name']), _strip_html(data['message'])
    if not name:
        return error_response("Le nom est invalide (1-100 caractères requis)", status_code=400)
    if not message:
        return error_response("Le message est invalide (1-250 caractères requis)", status_code=400)

    contact_message = ContactMessage(name=name, email=data['email'].strip().lower(), message=message)
    db.session.add(contact_message)
    db.session.commit()
    logger.info("Contact message stored", message_id=contact_message.id)

    if not get_email_service().send_admin_notification('contact_message', contact_message.to_dict()):
        logger.warning("Admin notification not sent", message_id=contact_message.id)

    return jsonify({
        'success': True,
        'message': 'Votre message a été envoyé avec succès'
    }), 200
