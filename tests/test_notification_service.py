from unittest.mock import MagicMock, patch

import pytest
from twilio.base.exceptions import TwilioException

from app.core.config import settings
from app.core.enums import ResetChannel
from app.models.password_reset import PasswordReset
from app.services.email_service import EmailService
from app.services.notification_service import NotificationDispatcher
from app.services.password_reset_service import PasswordResetService
from app.services.sms_service import SmsService


@pytest.fixture(autouse=True)
def reset_twilio_client():
    SmsService._client = None
    yield
    SmsService._client = None


def test_dispatch_routes_email_to_resend():
    with patch.object(EmailService, "send_otp_email", return_value="email-1") as send_email, \
            patch.object(SmsService, "send_otp_sms") as send_sms:
        message_id = NotificationDispatcher().dispatch(ResetChannel.EMAIL, "user@example.com", "123456", "Ana")

    assert message_id == "email-1"
    send_email.assert_called_once_with("user@example.com", "123456", "Ana")
    send_sms.assert_not_called()


def test_dispatch_routes_phone_to_twilio():
    with patch.object(SmsService, "send_otp_sms", return_value="SM1") as send_sms:
        message_id = NotificationDispatcher().dispatch(ResetChannel.PHONE, "+15551234567", "123456")

    assert message_id == "SM1"
    send_sms.assert_called_once_with("+15551234567", "123456")


def test_delivery_failure_is_swallowed_and_logged(caplog):
    with patch.object(EmailService, "send_otp_email", return_value=None):
        message_id = NotificationDispatcher().dispatch(ResetChannel.EMAIL, "user@example.com", "123456")

    assert message_id is None
    assert "Entrega fallida" in caplog.text
    assert "123456" not in caplog.text


def test_email_without_api_key_is_not_sent(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")
    with patch("app.services.email_service.resend.Emails.send") as send:
        assert EmailService.send_otp_email("user@example.com", "123456") is None
    send.assert_not_called()


def test_email_returns_resend_message_id(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    with patch("app.services.email_service.resend.Emails.send", return_value={"id": "email-42"}) as send:
        assert EmailService.send_otp_email("user@example.com", "654321", "Ana") == "email-42"

    params = send.call_args[0][0]
    assert params["to"] == ["user@example.com"]
    assert "654321" in params["html"]


def test_email_provider_error_returns_none(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    with patch("app.services.email_service.resend.Emails.send", side_effect=RuntimeError("timeout")):
        assert EmailService.send_otp_email("user@example.com", "654321") is None


def test_sms_without_credentials_is_not_sent(monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "")
    assert SmsService.send_otp_sms("+15551234567", "123456") is None


def test_sms_is_sent_with_twilio_client():
    fake_client = MagicMock()
    fake_client.messages.create.return_value = MagicMock(sid="SM42", status="queued")
    SmsService._client = fake_client

    assert SmsService.send_otp_sms("+15551234567", "123456") == "SM42"
    kwargs = fake_client.messages.create.call_args.kwargs
    assert kwargs["to"] == "+15551234567"
    assert "123456" in kwargs["body"]


def test_sms_twilio_error_returns_none():
    fake_client = MagicMock()
    fake_client.messages.create.side_effect = TwilioException("invalid number")
    SmsService._client = fake_client

    assert SmsService.send_otp_sms("+15551234567", "123456") is None


def test_sms_rejects_oversized_message():
    SmsService._client = MagicMock()
    assert SmsService.send_sms("+15551234567", "x" * 1601) is None
    SmsService._client.messages.create.assert_not_called()


def test_sms_client_construction_error_returns_none(monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setattr(settings, "TWILIO_PHONE_NUMBER", "+15550000000")
    with patch("app.services.sms_service.TwilioClient", side_effect=RuntimeError("transport outage")):
        assert SmsService.send_otp_sms("+15551234567", "123456") is None


def test_unexpected_provider_error_never_leaves_dispatch(caplog):
    with patch.object(SmsService, "send_otp_sms", side_effect=RuntimeError("transport outage")):
        message_id = NotificationDispatcher().dispatch(ResetChannel.PHONE, "+15551234567", "123456")

    assert message_id is None
    assert "Entrega fallida" in caplog.text


def test_request_code_survives_provider_outage(db, clock, password_mirror, make_user):
    make_user(phone="+15551234567")
    service = PasswordResetService(
        db,
        dispatcher=NotificationDispatcher(),
        clock=clock,
        password_mirror=password_mirror,
    )

    with patch.object(SmsService, "get_client", side_effect=RuntimeError("transport outage")):
        issued = service.request_code("+15551234567")

    assert issued.message_id is None
    assert issued.channel == ResetChannel.PHONE
    assert db.query(PasswordReset).filter(PasswordReset.active_identifier == "+15551234567").count() == 1
