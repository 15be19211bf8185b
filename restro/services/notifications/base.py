"""
Notification Service Abstract Base Class

Defines the interface for outgoing email (password reset links).
Supports both Mock (development) and Real (production) implementations.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

PASSWORD_RESET_CATEGORY = "password_reset"


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


def render_password_reset(name: str, reset_url: str, ttl_minutes: int) -> tuple[str, str]:
    """Return ``(html, text)`` bodies for a password reset email."""
    text = (
        f"Hi {name},\n\n"
        f"We received a request to reset your password. Open this link to choose a new one:\n"
        f"{reset_url}\n\n"
        f"The link expires in {ttl_minutes} minutes. If you did not ask for this, ignore this email."
    )
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #ff4757;">Reset your password</h1>
        <p>Hi {name},</p>
        <p>We received a request to reset your password.</p>
        <a href="{reset_url}" style="display: inline-block; background: #ff4757; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; margin: 20px 0;">
            Choose a new password
        </a>
        <p style="color: #666; font-size: 12px;">This link expires in {ttl_minutes} minutes. If you did not ask for this, ignore this email.</p>
    </div>
    """
    return html, text


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        """
        Send an email. ``category`` tags the message for provider-side
        analytics (e.g. ``password_reset``).
        """
        pass

    async def send_password_reset(
        self,
        to_email: str,
        name: str,
        reset_url: str,
        ttl_minutes: int = 60,
    ) -> NotificationResult:
        """Send a password reset link."""
        html, text = render_password_reset(name, reset_url, ttl_minutes)
        return await self.send_email(
            to_email=to_email,
            subject="Reset your password",
            body_html=html,
            body_text=text,
            category=PASSWORD_RESET_CATEGORY,
        )

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
