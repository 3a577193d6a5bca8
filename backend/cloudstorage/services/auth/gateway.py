"""
AuthenticationGateway
=====================

Orchestrates the login-session lifecycle on top of three collaborators that
are injected explicitly:

- :class:`~cloudstorage.services.tokens.TokenService` signs and verifies.
- :class:`~cloudstorage.services.credentials.CredentialStore` owns passwords
  and account linking.
- :class:`~cloudstorage.services._shared.ports.SessionStore` holds the single
  live refresh token per user.

Session states: ``Anonymous -> Authenticated -> Anonymous`` (logout). While
authenticated, an expired access token is recovered through :meth:`refresh`,
which rotates the refresh token on every call; any refresh failure ends the
session with :class:`InvalidRefreshToken`.

Collaborators that open their own Unit of Work are always called outside of
this service's UoW blocks.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from cloudstorage.services._shared.base import BaseService
from cloudstorage.services._shared.errors import (
    AuthenticationError,
    InvalidRefreshToken,
    NotFoundError,
)
from cloudstorage.services._shared.ports.identity_provider import FederatedProfile
from cloudstorage.services._shared.ports.session_store import SessionStore
from cloudstorage.services.auth.dto import AuthResult, ProfileUpdateIn
from cloudstorage.services.credentials.dto import FederatedAccountIn, LocalAccountIn, UserOut
from cloudstorage.services.credentials.service import CredentialStore
from cloudstorage.services.tokens.dto import TokenPair
from cloudstorage.services.tokens.service import TokenService

log = logging.getLogger(__name__)


class AuthenticationGateway(BaseService):
    """
    Register, log in, refresh, log out and manage the caller's own profile.

    :param tokens: Token issuer/verifier.
    :param credentials: Credential store.
    :param sessions: Refresh-token slot store.
    """

    def __init__(
        self,
        *,
        tokens: TokenService,
        credentials: CredentialStore,
        sessions: SessionStore,
    ) -> None:
        super().__init__()
        self.tokens = tokens
        self.credentials = credentials
        self.sessions = sessions

    # --------------------------------------------------------------------- #
    # Session lifecycle
    # --------------------------------------------------------------------- #

    def register(self, dto: LocalAccountIn) -> AuthResult:
        """
        Create a local account and open its first session.

        :raises AccountExists: Duplicate email.
        """
        user = self.credentials.create_local_account(dto)
        return self._open_session(user)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Verify credentials and open a session, replacing any previous one.

        :raises InvalidCredentials: Unknown email or wrong password.
        :raises AccountDeactivated: Correct password on a deactivated account.
        """
        user = self.credentials.authenticate(email, password)
        return self._open_session(user)

    def federated_callback(self, profile: FederatedProfile) -> AuthResult:
        """
        Link or create the account behind ``profile`` and open a session.

        :raises AccountDeactivated: The resolved account is deactivated.
        """
        user = self.credentials.link_or_create_federated_account(
            FederatedAccountIn(
                federated_id=profile.federated_id,
                email=profile.email,
                name=profile.name,
                avatar_url=profile.avatar_url,
            )
        )
        return self._open_session(user)

    def refresh(self, presented: str | None) -> TokenPair:
        """
        Exchange a refresh token for a new pair and rotate the stored slot.

        Every failure (bad signature, expiry, wrong type, unknown or
        deactivated user, or a token already rotated away) is reported as
        :class:`InvalidRefreshToken` and must end the client session.
        """
        if not presented:
            raise InvalidRefreshToken()
        try:
            user_id = self.tokens.verify_refresh_token(presented).user_id
        except AuthenticationError as exc:
            raise InvalidRefreshToken() from exc

        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            exists, active = user is not None, bool(user is not None and user.is_active)

        if not active:
            if exists:
                self.sessions.clear(user_id)
            log.warning("Refresh refused for unusable account", extra={"user_id": user_id})
            raise InvalidRefreshToken()

        pair = self.tokens.issue_token_pair(user_id)
        if not self.sessions.validate_and_consume(user_id, presented, replacement=pair.refresh_token):
            log.warning("Refresh token replay or stale rotation", extra={"user_id": user_id})
            raise InvalidRefreshToken()
        return pair

    def logout(self, user_id: int) -> None:
        """Empty the refresh slot. Calling it twice is harmless."""
        self.sessions.clear(user_id)
        log.info("Logged out", extra={"user_id": user_id})

    def _open_session(self, user: UserOut) -> AuthResult:
        pair = self.tokens.issue_token_pair(user.id)
        self.sessions.persist(user.id, pair.refresh_token)
        now = self.now_utc()
        with self.rw_uow() as uow:
            uow.users.touch_last_login(user.id, now)
        log.info("Session opened", extra={"user_id": user.id})
        return AuthResult(user=dataclasses.replace(user, last_login_at=now), tokens=pair)

    # --------------------------------------------------------------------- #
    # Profile
    # --------------------------------------------------------------------- #

    def get_profile(self, user_id: int) -> UserOut:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserOut.from_model(user)

    def update_profile(self, user_id: int, dto: ProfileUpdateIn) -> UserOut:
        """
        Update the display name and merge preference keys.

        :raises NotFoundError: Unknown user.
        """
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            fields: dict[str, Any] = {}
            if dto.name is not None:
                fields["name"] = dto.name
            if dto.preferences is not None:
                fields["preferences"] = {**(user.preferences or {}), **dto.preferences}
            if fields:
                uow.users.update(user, **fields)
            return UserOut.from_model(user)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """Delegate to the credential store; all refresh sessions end."""
        self.credentials.change_password(user_id, current_password, new_password)
