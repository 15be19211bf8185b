"""Password reset mail and the notification service factory."""

from types import SimpleNamespace

from restro.core.config import get_settings
from restro.services.notifications import (
    PASSWORD_RESET_CATEGORY,
    MockNotificationService,
    get_notification_service,
    reset_notification_service,
)
from restro.services.notifications.base import render_password_reset
from restro.services.notifications.real import RealNotificationService


class FakeSendGrid:

    def __init__(self, status_code=202):
        self.status_code = status_code
        self.sent = []

    def send(self, mail):
        self.sent.append(mail.get())
        return SimpleNamespace(status_code=self.status_code, headers={"X-Message-Id": "sg-1"})


class TestRendering:

    def test_bodies_carry_link_and_expiry(self):
        html, text = render_password_reset("Asha", "http://restro.test/reset-password?token=abc", 30)
        for body in (html, text):
            assert "http://restro.test/reset-password?token=abc" in body
            assert "30 minutes" in body


class TestMock:

    async def test_reset_mail_lands_in_outbox(self, mailer):
        result = await mailer.send_password_reset("Asha@Example.com", "Asha", "http://x/reset", 60)

        assert result.success
        [message] = mailer.messages_to("asha@example.com")
        assert message["category"] == PASSWORD_RESET_CATEGORY
        assert message["id"] == result.message_id

    async def test_simulated_failure(self):
        service = MockNotificationService(failure_rate=1.0, latency=(0.0, 0.0))
        result = await service.send_email("a@example.com", "Hi", "<p>Hi</p>")

        assert not result.success
        assert service.outbox == []
        assert service.failures == 1


class TestSendGrid:

    async def test_unconfigured_reports_failure(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "sendgrid_api_key", None)
        service = RealNotificationService()

        result = await service.send_email("a@example.com", "Hi", "<p>Hi</p>")
        assert not result.success
        assert not await service.health_check()

    async def test_sends_with_category(self):
        service = RealNotificationService(api_key="SG.test", from_email="noreply@restro.test")
        service.client = FakeSendGrid()

        result = await service.send_password_reset("asha@example.com", "Asha", "http://x/reset")

        assert result.success
        assert result.message_id == "sg-1"
        payload = service.client.sent[0]
        assert payload["categories"] == [PASSWORD_RESET_CATEGORY]
        assert payload["from"]["email"] == "noreply@restro.test"

    async def test_rejected_status(self):
        service = RealNotificationService(api_key="SG.test")
        service.client = FakeSendGrid(status_code=400)

        result = await service.send_email("a@example.com", "Hi", "<p>Hi</p>")
        assert not result.success
        assert "400" in result.error_message


class TestFactory:

    def test_development_uses_mock(self):
        reset_notification_service()
        try:
            service = get_notification_service()
            assert service.provider_name == "mock"
            assert get_notification_service() is service
        finally:
            reset_notification_service()
