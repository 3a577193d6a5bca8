from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class Mailer(Protocol):
    """Port for transactional mail. Methods return ``False`` when delivery failed."""

    def send_verification_email(self, to: str, token: str) -> bool: ...

    def send_password_reset_email(self, to: str, token: str) -> bool: ...


@dataclass(slots=True)
class SentMail:
    kind: str
    to: str
    token: str


class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory (tests)."""

    def __init__(self) -> None:
        self.outbox: list[SentMail] = []

    def send_verification_email(self, to: str, token: str) -> bool:
        self.outbox.append(SentMail("verification", to, token))
        return True

    def send_password_reset_email(self, to: str, token: str) -> bool:
        self.outbox.append(SentMail("password_reset", to, token))
        return True

    def last(self, kind: str) -> SentMail | None:
        return next((m for m in reversed(self.outbox) if m.kind == kind), None)
