from cloudstorage.infra.mail.email_service import EmailService, redact_email

__all__ = ["EmailService", "redact_email"]
