"""
CredentialStore
===============

Application service owning the credential side of the ``User`` aggregate:

- Password hashing and verification (salted, slow, via Werkzeug).
- Local account creation with email-uniqueness.
- Federated identity linking (by provider id, then by email, else create).
- Password change/reset and email verification.

It never issues tokens. Whenever a password changes it empties the user's
refresh-token slot through the injected :class:`SessionStore`, which forces
every other session to log in again.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from functools import cache

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from cloudstorage.models.base import digest
from cloudstorage.repositories.user import UserRepository
from cloudstorage.services._shared.base import BaseService
from cloudstorage.services._shared.errors import (
    AccountDeactivated,
    AccountExists,
    InvalidCredentials,
    InvalidCurrentPassword,
    InvalidVerificationToken,
    NotFoundError,
    violates,
)
from cloudstorage.services._shared.ports.mailer import Mailer
from cloudstorage.services._shared.ports.session_store import SessionStore
from cloudstorage.services.credentials.dto import FederatedAccountIn, LocalAccountIn, UserOut

log = logging.getLogger(__name__)


@cache
def _dummy_hash() -> str:
    return generate_password_hash(secrets.token_urlsafe(16))


class CredentialStore(BaseService):
    """
    Credential and account lifecycle service.

    :param sessions: Refresh-token slot store, cleared on password change/reset.
    :param mailer: Delivery of verification and reset tokens.
    :param password_reset_ttl: Reset-token lifetime in seconds.
    """

    def __init__(
        self,
        *,
        sessions: SessionStore,
        mailer: Mailer,
        password_reset_ttl: int = 3600,
    ) -> None:
        super().__init__()
        self.sessions = sessions
        self.mailer = mailer
        self.password_reset_ttl = int(password_reset_ttl)

    # --------------------------------------------------------------------- #
    # Hashing
    # --------------------------------------------------------------------- #

    @staticmethod
    def hash_password(plaintext: str) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(plaintext)

    @staticmethod
    def verify_password(plaintext: str, password_hash: str | None) -> bool:
        """
        Check ``plaintext`` against ``password_hash``.

        A missing hash is checked against a throwaway hash so the call costs
        the same whether or not the account has a password.
        """
        if not password_hash:
            check_password_hash(_dummy_hash(), plaintext)
            return False
        return bool(check_password_hash(password_hash, plaintext))

    # --------------------------------------------------------------------- #
    # Local accounts
    # --------------------------------------------------------------------- #

    def create_local_account(self, dto: LocalAccountIn) -> UserOut:
        """
        Create a password account and mail an email-verification token.

        :raises AccountExists: If the email is already registered.
        """
        raw_token = secrets.token_urlsafe(32)
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            if repo.exists_by_email(dto.email):
                raise AccountExists()
            user = repo.model(
                email=dto.email,
                name=dto.name,
                password_hash=self.hash_password(dto.password),
            )
            user.start_email_verification(raw_token)
            try:
                repo.add(user)
            except IntegrityError as exc:
                if violates(exc, "uq_users_email") or violates(exc, "users.email"):
                    raise AccountExists() from exc
                raise
            out = UserOut.from_model(user)

        log.info("Local account created", extra={"user_id": out.id})
        self.mailer.send_verification_email(out.email, raw_token)
        return out

    def authenticate(self, email: str, password: str) -> UserOut:
        """
        Verify an email/password pair.

        The password is always checked before the active flag, so a
        deactivated account is only revealed to a caller who knows its password.

        :raises InvalidCredentials: Unknown email, federated-only account or wrong password.
        :raises AccountDeactivated: Correct password on a deactivated account.
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            password_hash = user.password_hash if user is not None else None
            if not self.verify_password(password, password_hash) or user is None:
                raise InvalidCredentials()
            if not user.is_active:
                raise AccountDeactivated()
            return UserOut.from_model(user)

    # --------------------------------------------------------------------- #
    # Federated accounts
    # --------------------------------------------------------------------- #

    def link_or_create_federated_account(self, dto: FederatedAccountIn) -> UserOut:
        """
        Resolve a provider identity to a local account.

        1. A user already holding ``federated_id`` is returned; avatar and
           name are filled only where unset.
        2. Else a user with the same email gets the id linked and the email
           marked verified.
        3. Else a new password-less user is created with the email verified.

        :raises AccountDeactivated: The matching account is deactivated; nothing
            is linked or updated.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_federated_id(dto.federated_id)
            if user is not None and not user.is_active:
                raise AccountDeactivated()
            outcome = "existing"
            if user is None:
                user = repo.get_by_email(dto.email)
                if user is not None and not user.is_active:
                    raise AccountDeactivated()
                if user is not None:
                    user.federated_id = dto.federated_id
                    user.is_email_verified = True
                    outcome = "linked"
            if user is None:
                user = repo.model(
                    email=dto.email,
                    name=dto.name or dto.email.split("@", 1)[0],
                    federated_id=dto.federated_id,
                    avatar_url=dto.avatar_url,
                    is_email_verified=True,
                )
                repo.add(user)
                outcome = "created"
            else:
                if not user.avatar_url and dto.avatar_url:
                    user.avatar_url = dto.avatar_url
                if not user.name and dto.name:
                    user.name = dto.name
                repo.flush()
            out = UserOut.from_model(user)

        log.info("Federated account resolved (%s)", outcome, extra={"user_id": out.id})
        return out

    # --------------------------------------------------------------------- #
    # Password lifecycle
    # --------------------------------------------------------------------- #

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """
        Replace the password and end every refresh session of the user.

        Federated-only accounts have no current password to prove and may set
        one by passing an empty ``current_password``.

        :raises InvalidCurrentPassword: If ``current_password`` does not verify.
        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            if user.has_password and not self.verify_password(current_password, user.password_hash):
                raise InvalidCurrentPassword()
            user.password_hash = self.hash_password(new_password)
            uow.users.flush()

        self.sessions.clear(user_id)
        log.info("Password changed; refresh session cleared", extra={"user_id": user_id})

    def request_password_reset(self, email: str) -> None:
        """
        Mail a reset token to an active local account.

        Silent for unknown, inactive and federated-only accounts.
        """
        raw_token = secrets.token_urlsafe(32)
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None or not user.is_active or not user.has_password:
                return
            user.start_password_reset(
                raw_token, self.now_utc() + timedelta(seconds=self.password_reset_ttl)
            )
            uow.users.flush()
            to, user_id = user.email, user.id

        log.info("Password reset requested", extra={"user_id": user_id})
        self.mailer.send_password_reset_email(to, raw_token)

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Consume a reset token, set the new password and clear the refresh slot.

        :raises InvalidVerificationToken: Unknown, used or expired token.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_reset_digest(digest(token))
            if user is None or not user.password_reset_is_valid(self.now_utc()):
                raise InvalidVerificationToken()
            user.password_hash = self.hash_password(new_password)
            user.clear_password_reset()
            uow.users.flush()
            user_id = user.id

        self.sessions.clear(user_id)
        log.info("Password reset completed; refresh session cleared", extra={"user_id": user_id})

    def verify_email(self, token: str) -> UserOut:
        """:raises InvalidVerificationToken: Unknown or already used token."""
        with self.rw_uow() as uow:
            user = uow.users.get_by_verification_digest(digest(token))
            if user is None:
                raise InvalidVerificationToken()
            user.mark_email_verified()
            uow.users.flush()
            return UserOut.from_model(user)

    # --------------------------------------------------------------------- #
    # Administration
    # --------------------------------------------------------------------- #

    def create_admin(self, *, email: str, name: str, password: str) -> UserOut:
        """Create a verified admin account, or promote an existing one."""
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(email)
            if user is None:
                user = repo.model(email=email, name=name, password_hash=self.hash_password(password))
                repo.add(user)
            user.role = "admin"
            user.is_email_verified = True
            repo.flush()
            return UserOut.from_model(user)

    def set_active(self, email: str, *, active: bool) -> UserOut:
        """
        Toggle the active flag. Deactivation also empties the refresh slot.

        :raises NotFoundError: If no user has ``email``.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_email(email)
            if user is None:
                raise NotFoundError("User", email)
            user.is_active = active
            uow.users.flush()
            out = UserOut.from_model(user)

        if not active:
            self.sessions.clear(out.id)
        log.info("Account %s", "activated" if active else "deactivated", extra={"user_id": out.id})
        return out
