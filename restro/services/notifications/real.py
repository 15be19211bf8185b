"""
SendGrid Notification Service

Delivers transactional mail through the SendGrid v3 API. The client is
synchronous, so each send runs in a worker thread.
"""

import asyncio
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Category, From, Mail

from restro.core.config import get_settings
from restro.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

ACCEPTED_STATUS = (200, 201, 202)


class RealNotificationService(BaseNotificationService):

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None, from_name: Optional[str] = None):
        settings = get_settings()
        api_key = api_key or settings.sendgrid_api_key

        self.client = SendGridAPIClient(api_key) if api_key else None
        self.sender = From(from_email or settings.sendgrid_from_email, from_name or settings.sendgrid_from_name)

        if self.client is None:
            logger.warning("SENDGRID_API_KEY not set; outgoing mail will be reported as failed")

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    def _build(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str],
        category: Optional[str],
    ) -> Mail:
        mail = Mail(
            from_email=self.sender,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        if category:
            mail.category = Category(category)
        return mail

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        if self.client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = self._build(to_email, subject, body_html, body_text, category)
        try:
            response = await asyncio.to_thread(self.client.send, mail)
        except Exception as e:
            logger.error(f"SendGrid rejected {category or 'email'} to {to_email}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        if response.status_code not in ACCEPTED_STATUS:
            logger.error(f"SendGrid answered {response.status_code} for {category or 'email'} to {to_email}")
            return NotificationResult(
                success=False,
                error_message=f"SendGrid status {response.status_code}",
                provider="sendgrid",
            )

        logger.info(f"SendGrid accepted {category or 'email'} to {to_email}")
        return NotificationResult(
            success=True,
            message_id=response.headers.get("X-Message-Id"),
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        return self.client is not None
