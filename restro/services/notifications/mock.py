"""
Mock Notification Service

Stands in for SendGrid in development and tests. Nothing leaves the
process: each accepted message is appended to ``outbox`` and logged, and
a configurable share of sends fails the way a provider outage would.
"""

import asyncio
import logging
import random
import uuid
from typing import Any, Optional

from restro.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):

    def __init__(self, failure_rate: float = 0.05, latency: tuple[float, float] = (0.1, 0.3)):
        self.failure_rate = failure_rate
        self.latency = latency
        self.outbox: list[dict[str, Any]] = []
        self.failures = 0
        logger.info(f"MockNotificationService ready (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def messages_to(self, email: str) -> list[dict[str, Any]]:
        return [m for m in self.outbox if m["to"] == email.lower()]

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        low, high = self.latency
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))

        if random.random() < self.failure_rate:
            self.failures += 1
            logger.warning(f"Simulated delivery failure for {category or 'email'} to {to_email}")
            return NotificationResult(success=False, error_message="Simulated email failure", provider="mock")

        message_id = f"mock-{uuid.uuid4().hex[:12]}"
        self.outbox.append({
            "id": message_id,
            "to": to_email.lower(),
            "subject": subject,
            "category": category,
            "html": body_html,
            "text": body_text,
        })
        logger.info(f"[mock mail] {category or 'email'} -> {to_email}: {subject} ({message_id})")
        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def health_check(self) -> bool:
        return True
