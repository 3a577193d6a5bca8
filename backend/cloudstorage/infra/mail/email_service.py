"""SMTP delivery of verification and password-reset mail."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from cloudstorage.services._shared.ports.mailer import Mailer

log = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Keep two characters of the local part and the domain."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailService(Mailer):
    """Send transactional mail.

    Without ``smtp_host`` the service runs in dev mode: nothing is sent and
    one redacted log line is written instead. Delivery failures are logged
    and reported as ``False``; they never abort the calling operation.
    """

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "CloudStorage",
        base_url: str = "http://localhost:5173",
        timeout: float = 30.0,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def _build(self, to_email: str, subject: str, text_body: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> bool:
        if not self.is_configured:
            log.info(
                "Mail not sent (dev mode)",
                extra={"to": redact_email(to_email), "subject": subject},
            )
            return True

        msg = self._build(to_email, subject, text_body, html_body)
        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=self.timeout
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except smtplib.SMTPAuthenticationError as exc:
            log.error(
                "SMTP authentication failed",
                extra={"to": redact_email(to_email), "host": self.smtp_host, "smtp_code": exc.smtp_code},
            )
            return False
        except (smtplib.SMTPException, ssl.SSLError, OSError) as exc:
            log.error(
                "Mail delivery failed",
                extra={
                    "to": redact_email(to_email),
                    "host": self.smtp_host,
                    "error_type": type(exc).__name__,
                },
            )
            return False

        log.info("Mail sent", extra={"to": redact_email(to_email), "subject": subject})
        return True

    def send_verification_email(self, to: str, token: str) -> bool:
        url = f"{self.base_url}/verify-email?token={token}"
        subject = "Verify your email address"
        text = f"Confirm your email address by opening this link:\n\n{url}\n"
        html = f'<p>Confirm your email address:</p><p><a href="{url}">Verify email</a></p>'
        return self._send(to, subject, text, html)

    def send_password_reset_email(self, to: str, token: str) -> bool:
        url = f"{self.base_url}/reset-password?token={token}"
        subject = "Reset your password"
        text = (
            "Someone asked to reset the password of your account. If it was you, open:\n\n"
            f"{url}\n\nOtherwise ignore this message."
        )
        html = (
            "<p>Someone asked to reset the password of your account.</p>"
            f'<p><a href="{url}">Choose a new password</a></p>'
            "<p>If it was not you, ignore this message.</p>"
        )
        return self._send(to, subject, text, html)
