"""
SendGrid Email Service
Sends workflow emails, internal notifications and lead confirmations.
"""

import os
import logging
from typing import Any, Dict, Optional

from flask import current_app, has_app_context
from markupsafe import escape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

logger = logging.getLogger(__name__)

DEFAULT_FROM_EMAIL = 'noreply@metaadsmastery.dalaconcept.com'
DEFAULT_FROM_NAME = 'Meta Ads Mastery'


class EmailService:
    """Service for sending emails via SendGrid"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        admin_email: Optional[str] = None,
        client: Optional[Any] = None
    ):
        self.api_key = api_key or os.getenv('SENDGRID_API_KEY')
        self.from_email = from_email or os.getenv('MAIL_FROM_EMAIL', DEFAULT_FROM_EMAIL)
        self.from_name = from_name or os.getenv('MAIL_FROM_NAME', DEFAULT_FROM_NAME)
        self.admin_email = admin_email or os.getenv('ADMIN_EMAIL')

        if client is not None:
            self.client = client
        elif not self.api_key:
            logger.warning("SENDGRID_API_KEY not set - emails will not be sent")
            self.client = None
        else:
            self.client = SendGridAPIClient(self.api_key)

    @property
    def configured(self) -> bool:
        return self.client is not None

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        retries: int = 3
    ) -> bool:
        """
        Send an email, retrying transient failures.

        Server errors (5xx) and transport errors are retried up to ``retries``
        times; client errors (4xx) are not.

        Returns:
            True if SendGrid accepted the message, False otherwise
        """
        if not self.configured:
            logger.error("Cannot send email - SendGrid not configured")
            return False

        message = Mail(
            from_email=Email(self.from_email, self.from_name),
            to_emails=To(to_email),
            subject=subject,
            html_content=Content("text/html", html_content)
        )
        if text_content:
            message.add_content(Content("text/plain", text_content))

        for attempt in range(retries):
            try:
                response = self.client.send(message)
            except Exception as e:
                status_code = getattr(e, 'status_code', None)
                if status_code is not None and status_code < 500:
                    logger.error(f"SendGrid client error: {status_code} - {getattr(e, 'body', e)}")
                    return False
                logger.warning(f"Error sending email (attempt {attempt + 1}/{retries}): {e}")
                continue

            if response.status_code in (200, 201, 202):
                logger.info(f"Email sent to {to_email}: {subject}")
                return True
            if response.status_code >= 500:
                logger.warning(
                    f"SendGrid server error (attempt {attempt + 1}/{retries}): {response.status_code}")
                continue

            logger.error(f"SendGrid client error: {response.status_code} - {response.body}")
            return False

        logger.error(f"Giving up sending email to {to_email} after {retries} attempts")
        return False

    def send_workflow_notification(self, contact, message: Optional[str],
                                   recipient: Optional[str] = None) -> bool:
        """Internal mail telling the admin that a workflow reached a contact."""
        to_email = recipient or self.admin_email
        if not to_email:
            logger.error("Cannot send workflow notification - ADMIN_EMAIL not configured")
            return False

        label = message or 'Événement workflow'
        html_content = f"""
            <h2>Notification Workflow</h2>
            <p><strong>Contact:</strong> {escape(contact.full_name)} ({escape(contact.email)})</p>
            <p><strong>Message:</strong> {escape(message or 'Aucun message')}</p>
        """
        return self.send_email(to_email, f"Notification workflow: {label}", html_content)

    def send_admin_notification(self, kind: str, data: Dict[str, Any]) -> bool:
        """
        Notify the admin about a new lead.

        Args:
            kind: "contact_submission", "form_submission" or "contact_message"
            data: lead fields (first_name, last_name, name, email, phone_number,
                form_title, message)
        """
        if not self.admin_email:
            logger.error("Cannot send admin notification - ADMIN_EMAIL not configured")
            return False

        full_name = data.get('name') or f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()
        if kind == 'form_submission':
            subject = f"📝 Nouvelle soumission : {data.get('form_title') or 'formulaire'}"
            intro = f"Le formulaire « {escape(data.get('form_title') or '')} » a reçu une réponse :"
        elif kind == 'contact_message':
            subject = "✉️ Nouveau message de contact"
            intro = "Un visiteur a laissé un message :"
        else:
            subject = "🎓 Nouvelle inscription à Meta Ads Mastery"
            intro = "Un nouveau prospect s'est inscrit à Meta Ads Mastery :"

        if kind == 'contact_message':
            detail = f"<p><strong>Message :</strong> {escape(data.get('message') or '')}</p>"
        else:
            detail = f"<p><strong>Téléphone :</strong> {escape(data.get('phone_number') or 'Non fourni')}</p>"

        html_content = f"""
        <!DOCTYPE html>
        <html>
          <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>{intro}</h2>
            <p><strong>Nom complet :</strong> {escape(full_name or 'Non fourni')}</p>
            <p><strong>Email :</strong> {escape(data.get('email') or '')}</p>
            {detail}
          </body>
        </html>
        """
        return self.send_email(self.admin_email, subject, html_content)

    def send_lead_confirmation(self, first_name: str, to_email: str) -> bool:
        """Confirmation sent to a prospect right after sign-up."""
        subject = "Votre inscription à Meta Ads Mastery est confirmée"
        html_content = f"""
        <!DOCTYPE html>
        <html>
          <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <p>Bonjour {escape(first_name)},</p>
            <p>Merci pour votre inscription ! Nous avons bien reçu votre demande et
            nous revenons vers vous très rapidement.</p>
            <p style="margin-top: 30px;">À bientôt,<br>L'équipe Meta Ads Mastery</p>
          </body>
        </html>
        """
        text_content = (
            f"Bonjour {first_name},\n\n"
            "Merci pour votre inscription ! Nous avons bien reçu votre demande et "
            "nous revenons vers vous très rapidement.\n\n"
            "À bientôt,\nL'équipe Meta Ads Mastery"
        )
        return self.send_email(to_email, subject, html_content, text_content)


# Global instance
_email_service = None


def get_email_service() -> EmailService:
    """Return the app's email service, or a process-wide singleton outside an app."""
    if has_app_context() and 'email_service' in current_app.extensions:
        return current_app.extensions['email_service']
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
