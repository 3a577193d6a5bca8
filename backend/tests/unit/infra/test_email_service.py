"""Tests for the SMTP EmailService."""

from __future__ import annotations

import logging
import smtplib
from unittest import mock

import pytest

from cloudstorage.infra.mail import EmailService, redact_email


def test_redact_email():
    assert redact_email("alice@example.com") == "al***@example.com"
    assert redact_email("nonsense") == "redacted"


def test_dev_mode_logs_without_token(caplog):
    service = EmailService(smtp_host=None)
    assert service.is_configured is False
    with caplog.at_level(logging.INFO, logger="cloudstorage.infra.mail.email_service"):
        assert service.send_password_reset_email("alice@example.com", "secret-token") is True
    record = next(r for r in caplog.records if r.getMessage() == "Mail not sent (dev mode)")
    assert record.to == "al***@example.com"
    assert "secret-token" not in caplog.text
    assert "alice@example.com" not in caplog.text


@pytest.fixture
def configured():
    return EmailService(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="mailer",
        smtp_password="pw",
        from_email="no-reply@example.com",
        base_url="https://app.example.com/",
    )


def test_sends_verification_link_over_starttls(configured):
    with mock.patch("cloudstorage.infra.mail.email_service.smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value.__enter__.return_value
        assert configured.send_verification_email("bob@example.com", "tok123") is True

    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer", "pw")
    sender, recipient, body = server.sendmail.call_args.args
    assert sender == "no-reply@example.com"
    assert recipient == "bob@example.com"
    assert "https://app.example.com/verify-email?token=tok123" in body


def test_ssl_mode(configured):
    configured.smtp_use_tls = False
    with mock.patch("cloudstorage.infra.mail.email_service.smtplib.SMTP_SSL") as smtp_cls:
        server = smtp_cls.return_value.__enter__.return_value
        assert configured.send_password_reset_email("bob@example.com", "tok") is True
    assert "reset-password?token=tok" in server.sendmail.call_args.args[2]


@pytest.mark.parametrize(
    "error",
    [
        smtplib.SMTPAuthenticationError(535, b"bad credentials"),
        smtplib.SMTPServerDisconnected("gone"),
        OSError("unreachable"),
    ],
)
def test_delivery_failure_returns_false(configured, error):
    with mock.patch("cloudstorage.infra.mail.email_service.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.__enter__.return_value.sendmail.side_effect = error
        assert configured.send_verification_email("bob@example.com", "tok") is False
