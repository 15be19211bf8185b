"""
Notification services.

Development uses ``MockNotificationService``; staging and production send
through SendGrid. The chosen service is built once per process.
"""

import logging
from functools import lru_cache

from restro.core.config import get_settings
from restro.services.notifications.base import (
    PASSWORD_RESET_CATEGORY,
    BaseNotificationService,
    NotificationResult,
)
from restro.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    settings = get_settings()

    if not settings.use_real_services:
        logger.info("Notifications: mock outbox (development mode)")
        return MockNotificationService(failure_rate=settings.mock_email_failure_rate)

    from restro.services.notifications.real import RealNotificationService

    logger.info(f"Notifications: SendGrid ({settings.env_mode.value} mode)")
    return RealNotificationService()


def reset_notification_service() -> None:
    """Forget the cached service, e.g. after settings change."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "MockNotificationService",
    "NotificationResult",
    "PASSWORD_RESET_CATEGORY",
]
