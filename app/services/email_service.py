"""
AWS SES Email Service for storefront customer emails.

Handles email formatting, template rendering, AWS SES integration and the
email log.
"""

import logging
from email.utils import formataddr
from html import escape
from typing import Optional
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import EmailDeliveryError
from app.core.logging_config import mask_email
from app.crud import email_log
from app.models.store import Store

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "fr"
DEFAULT_PRIMARY_COLOR = "#0066FF"

_TRANSLATIONS = {
    "fr": {
        "code_subject": "Votre code de connexion : {code}",
        "code_title": "Votre code de connexion",
        "code_intro": "Utilisez le code ci-dessous pour accéder à votre espace client.",
        "code_expiry": "Ce code expire dans {minutes} minutes.",
        "access_subject": "Accédez à votre réservation",
        "access_title": "Votre espace client",
        "access_intro": "Cliquez sur le lien ci-dessous pour accéder directement à votre réservation.",
        "access_cta": "Voir ma réservation",
        "ignore": "Si vous n'êtes pas à l'origine de cette demande, ignorez simplement cet email.",
        "contact": "Une question ? Contactez-nous",
    },
    "en": {
        "code_subject": "Your login code: {code}",
        "code_title": "Your login code",
        "code_intro": "Use the code below to access your customer account.",
        "code_expiry": "This code expires in {minutes} minutes.",
        "access_subject": "Access your reservation",
        "access_title": "Your customer account",
        "access_intro": "Click the link below to go straight to your reservation.",
        "access_cta": "View my reservation",
        "ignore": "If you did not request this, you can safely ignore this email.",
        "contact": "Questions? Contact us",
    },
}


def get_translations(locale: Optional[str]) -> dict:
    return _TRANSLATIONS.get(locale or DEFAULT_LOCALE, _TRANSLATIONS[DEFAULT_LOCALE])


class EmailService:
    """
    Service for sending store-branded emails via AWS SES.

    Every attempt is written to the email log with status "sent" or "failed".
    """

    def __init__(self, ses_client=None):
        """Initialize AWS SES client"""
        if ses_client is not None:
            self.ses_client = ses_client
            return

        session_kwargs = {
            'region_name': settings.AWS_REGION,
        }

        # Add credentials if provided (otherwise uses IAM role)
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            session_kwargs['aws_access_key_id'] = settings.AWS_ACCESS_KEY_ID
            session_kwargs['aws_secret_access_key'] = settings.AWS_SECRET_ACCESS_KEY

        self.ses_client = boto3.client('ses', **session_kwargs)

    def send_verification_code_email(
        self,
        db: Session,
        to: str,
        store: Store,
        code: str,
        locale: Optional[str] = None,
    ) -> str:
        """
        Send a login code email branded for the store.

        Args:
            db: Database session (for the email log)
            to: Recipient email address
            store: Store the customer is logging into
            code: 6-digit verification code
            locale: "fr" (default) or "en"

        Returns:
            str: Provider message id

        Raises:
            EmailDeliveryError: If SES rejects or fails the send
        """
        t = get_translations(locale)
        subject = f"{t['code_subject'].format(code=code)} - {store.name}"
        minutes = settings.VERIFICATION_CODE_TTL_MINUTES

        body_html = f"""
<p style="margin: 0 0 24px 0; color: #666666; font-size: 16px; line-height: 1.5;">{escape(t['code_intro'])}</p>
<div style="background-color: #f8f9fa; border-radius: 8px; padding: 30px; text-align: center; margin: 0 0 24px 0;">
    <div style="font-size: 36px; font-weight: 700; letter-spacing: 8px; color: {self._primary_color(store)}; font-family: 'Courier New', monospace;">{code}</div>
</div>
<p style="margin: 0; color: #999999; font-size: 14px;">{escape(t['code_expiry'].format(minutes=minutes))}</p>
"""
        html_body = self._build_layout_html(store, t, t['code_title'], body_html)
        text_body = self._build_layout_text(
            store, t,
            f"{t['code_intro']}\n\n{code}\n\n{t['code_expiry'].format(minutes=minutes)}"
        )

        return self._send_and_log(db, store, to, subject, html_body, text_body, "verification_code")

    def send_instant_access_email(
        self,
        db: Session,
        to: str,
        store: Store,
        access_url: str,
        locale: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> str:
        """
        Send a one-click link that logs the customer straight into their account.

        Raises:
            EmailDeliveryError: If SES rejects or fails the send
        """
        t = get_translations(locale)
        subject = f"{t['access_subject']} - {store.name}"

        body_html = f"""
<p style="margin: 0 0 24px 0; color: #666666; font-size: 16px; line-height: 1.5;">{escape(t['access_intro'])}</p>
<p style="text-align: center; margin: 0 0 24px 0;">
    <a href="{escape(access_url, quote=True)}" style="display: inline-block; padding: 14px 28px; background-color: {self._primary_color(store)}; color: #ffffff; text-decoration: none; border-radius: 6px; font-weight: 600;">{escape(t['access_cta'])}</a>
</p>
"""
        html_body = self._build_layout_html(store, t, t['access_title'], body_html)
        text_body = self._build_layout_text(store, t, f"{t['access_intro']}\n\n{access_url}")

        return self._send_and_log(
            db, store, to, subject, html_body, text_body, "instant_access", customer_id=customer_id
        )

    def _send_and_log(
        self,
        db: Session,
        store: Store,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        template_type: str,
        customer_id: Optional[str] = None,
    ) -> str:
        try:
            response = self.ses_client.send_email(
                Source=formataddr((store.name, settings.AWS_SES_FROM_EMAIL)),
                Destination={'ToAddresses': [to]},
                ReplyToAddresses=[store.email] if store.email else [],
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {
                        'Html': {'Data': html_body, 'Charset': 'UTF-8'},
                        'Text': {'Data': text_body, 'Charset': 'UTF-8'}
                    }
                }
            )

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"AWS SES ClientError: {error_code} - {error_message}")

            if error_code == 'MessageRejected':
                logger.error(f"Email rejected: {error_message}")
            elif error_code == 'MailFromDomainNotVerified':
                logger.error("Sender email not verified in SES")

            email_log.record(
                db, store.id, to, subject, template_type, "failed",
                error=f"{error_code}: {error_message}", customer_id=customer_id,
            )
            raise EmailDeliveryError(f"{error_code}: {error_message}") from e

        except BotoCoreError as e:
            logger.error(f"AWS BotoCoreError: {str(e)}")
            email_log.record(
                db, store.id, to, subject, template_type, "failed",
                error=str(e), customer_id=customer_id,
            )
            raise EmailDeliveryError(str(e)) from e

        message_id = response.get('MessageId')
        logger.info(f"{template_type} email sent to {mask_email(to)} (MessageId: {message_id})")
        email_log.record(
            db, store.id, to, subject, template_type, "sent",
            message_id=message_id, customer_id=customer_id,
        )
        return message_id

    @staticmethod
    def _primary_color(store: Store) -> str:
        return store.primary_color or DEFAULT_PRIMARY_COLOR

    def _build_layout_html(self, store: Store, t: dict, title: str, body_html: str) -> str:
        """
        Wrap an email body in the store-branded layout.

        Args:
            store: Store for name, logo and contact details
            t: Translations for the email locale
            title: Heading shown above the body
            body_html: Inner HTML

        Returns:
            str: Full HTML document
        """
        logo = (
            f'<img src="{escape(store.logo_url, quote=True)}" alt="{escape(store.name, quote=True)}" style="max-height: 48px; margin-bottom: 16px;">'
            if store.logo_url else ""
        )
        contact_parts = [escape(part) for part in (store.email, store.phone) if part]
        contact = (
            f'<p style="margin: 0; color: #999999; font-size: 12px;">{escape(t["contact"])} : {" · ".join(contact_parts)}</p>'
            if contact_parts else ""
        )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <table role="presentation" style="width: 100%; border-collapse: collapse;">
        <tr>
            <td align="center" style="padding: 40px 0;">
                <table role="presentation" style="width: 600px; border-collapse: collapse; background-color: #ffffff; border-radius: 8px;">
                    <tr>
                        <td style="padding: 40px 40px 20px 40px; text-align: center;">
                            {logo}
                            <h1 style="margin: 0; color: #333333; font-size: 24px; font-weight: 600;">{escape(title)}</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 0 40px 32px 40px;">{body_html}</td>
                    </tr>
                    <tr>
                        <td style="padding: 24px 40px; background-color: #f8f9fa; border-radius: 0 0 8px 8px; text-align: center;">
                            <p style="margin: 0 0 8px 0; color: #999999; font-size: 12px;">{escape(t['ignore'])}</p>
                            {contact}
                            <p style="margin: 8px 0 0 0; color: #999999; font-size: 12px;">{escape(store.name)}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

    def _build_layout_text(self, store: Store, t: dict, body_text: str) -> str:
        """Plain text fallback for the branded layout."""
        contact_parts = [part for part in (store.email, store.phone) if part]
        contact = f"{t['contact']} : {' / '.join(contact_parts)}\n" if contact_parts else ""

        return f"""{body_text}

{t['ignore']}

---
{store.name}
{contact}"""


# Singleton instance
email_service = EmailService()
