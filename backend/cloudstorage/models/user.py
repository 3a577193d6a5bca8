"""User model: credentials, profile, session slot and account lifecycle fields."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, String, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column, validates

from cloudstorage.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, as_utc, digest

ROLES = ("user", "admin")


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account identity for local (password) and federated logins.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed). Globally unique.
    password_hash : str | None
        Salted one-way hash. ``None`` for federated-only accounts.
    federated_id : str | None
        Identity-provider subject. Unique when present.
    name : str
        Display name.
    avatar_url : str | None
        Optional avatar reference.
    role : str
        ``"user"`` or ``"admin"``.
    refresh_token_hash : str | None
        Digest of the single live refresh token. ``None`` when logged out.
    email_verification_token / password_reset_token : str | None
        Digests of the one-time tokens mailed to the user.

    Notes
    -----
    A row must carry a password hash or a federated id; otherwise nobody could
    ever authenticate as it. The check constraint enforces this.
    """

    __tablename__ = "users"

    # Identity
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    federated_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Profile
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")
    preferences: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Account state
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Session slot
    refresh_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Verification / reset
    email_verification_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    password_reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    password_reset_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("federated_id", name="uq_users_federated_id"),
        CheckConstraint("role IN ('user', 'admin')", name="role_valid"),
        CheckConstraint(
            "password_hash IS NOT NULL OR federated_id IS NOT NULL",
            name="credential_present",
        ),
    )

    # -------------------- Derived --------------------
    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    # -------------------- Verification / reset --------------------
    def start_email_verification(self, raw_token: str) -> None:
        """Store the digest of a freshly mailed verification token."""
        self.email_verification_token = digest(raw_token)

    def mark_email_verified(self) -> None:
        self.is_email_verified = True
        self.email_verification_token = None

    def start_password_reset(self, raw_token: str, expires_at: datetime) -> None:
        """
        Store the digest of a reset token together with its expiry.

        :param raw_token: Token mailed to the user; only its digest is kept.
        :type raw_token: str
        :param expires_at: Instant after which the token is rejected.
        :type expires_at: datetime
        """
        self.password_reset_token = digest(raw_token)
        self.password_reset_expires_at = expires_at

    def password_reset_is_valid(self, now: datetime) -> bool:
        expires_at = as_utc(self.password_reset_expires_at)
        return bool(self.password_reset_token) and expires_at is not None and now < expires_at

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires_at = None

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("name")
    def _normalize_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Name is required.")
        return value.strip()

    @validates("role")
    def _validate_role(self, key: str, value: str) -> str:
        if value not in ROLES:
            raise ValueError(f"Unknown role: {value!r}")
        return value
