"""Session lifecycle through AuthenticationGateway, backed by the database slot."""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time
from sqlalchemy import select

from cloudstorage.core.extensions import db
from cloudstorage.models.base import digest
from cloudstorage.models.user import User
from cloudstorage.repositories.user import UserRepository
from cloudstorage.services._shared.errors import (
    AccountDeactivated,
    AccountExists,
    InvalidCredentials,
    InvalidRefreshToken,
    NotFoundError,
)
from cloudstorage.services._shared.ports import FederatedProfile
from cloudstorage.services.auth import AuthResult, ProfileUpdateIn
from cloudstorage.services.credentials import LocalAccountIn
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


@pytest.fixture()
def gateway(services):
    return services.gateway


def _slot(user_id: int) -> str | None:
    stmt = select(User.refresh_token_hash).where(User.id == user_id)
    return db.session.execute(stmt).scalar_one_or_none()


class TestOpenSession:
    def test_register_opens_session(self, gateway, mailer, session):
        result = gateway.register(
            LocalAccountIn(email="reg@example.com", password="Secret1", name="Reg")
        )
        assert isinstance(result, AuthResult)
        assert result.user.email == "reg@example.com"
        assert result.user.last_login_at is not None
        assert _slot(result.user.id) == digest(result.tokens.refresh_token)
        assert mailer.last("verification").to == "reg@example.com"

    def test_register_duplicate(self, gateway, session):
        UserFactory(email="dup@example.com")
        with pytest.raises(AccountExists):
            gateway.register(LocalAccountIn(email="dup@example.com", password="Secret1", name="D"))

    def test_login(self, gateway, session):
        user = UserFactory()
        uid, email = user.id, user.email
        result = gateway.login(email, DEFAULT_PASSWORD)
        assert result.user.id == uid
        assert _slot(uid) == digest(result.tokens.refresh_token)
        assert UserRepository().get(uid).last_login_at is not None

    def test_login_failure_leaves_slot_alone(self, gateway, session):
        user = UserFactory()
        uid, email = user.id, user.email
        first = gateway.login(email, DEFAULT_PASSWORD)
        with pytest.raises(InvalidCredentials):
            gateway.login(email, "wrong")
        assert _slot(uid) == digest(first.tokens.refresh_token)

    def test_login_deactivated(self, gateway, session):
        user = UserFactory(is_active=False)
        with pytest.raises(AccountDeactivated):
            gateway.login(user.email, DEFAULT_PASSWORD)


class TestRefresh:
    def test_rotation_and_replay(self, gateway, session):
        user = UserFactory()
        first = gateway.login(user.email, DEFAULT_PASSWORD).tokens

        second = gateway.refresh(first.refresh_token)
        assert second.refresh_token != first.refresh_token

        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(first.refresh_token)
        # The rotated-in token still works after the failed replay.
        assert gateway.refresh(second.refresh_token).refresh_token != second.refresh_token

    def test_second_login_ends_first_session(self, gateway, session):
        user = UserFactory()
        email = user.email
        s1 = gateway.login(email, DEFAULT_PASSWORD).tokens
        s2 = gateway.login(email, DEFAULT_PASSWORD).tokens
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(s1.refresh_token)
        gateway.refresh(s2.refresh_token)

    def test_password_change_ends_every_session(self, gateway, session):
        user = UserFactory()
        uid, email = user.id, user.email
        pair = gateway.login(email, DEFAULT_PASSWORD).tokens
        gateway.change_password(uid, DEFAULT_PASSWORD, "NewSecret1")
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(pair.refresh_token)
        assert _slot(uid) is None

    def test_logout(self, gateway, session):
        user = UserFactory()
        uid = user.id
        pair = gateway.login(user.email, DEFAULT_PASSWORD).tokens
        gateway.logout(uid)
        gateway.logout(uid)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(pair.refresh_token)

    def test_deactivated_user_cannot_refresh(self, gateway, services, session):
        user = UserFactory()
        uid, email = user.id, user.email
        pair = gateway.login(email, DEFAULT_PASSWORD).tokens
        services.credentials.set_active(email, active=False)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(pair.refresh_token)
        assert _slot(uid) is None

    @pytest.mark.parametrize("presented", [None, "", "garbage"])
    def test_unusable_input(self, gateway, session, presented):
        with pytest.raises(InvalidRefreshToken) as exc:
            gateway.refresh(presented)
        assert exc.value.code == "invalid_refresh_token"

    def test_access_token_is_not_a_refresh_token(self, gateway, session):
        user = UserFactory()
        pair = gateway.login(user.email, DEFAULT_PASSWORD).tokens
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(pair.access_token)

    def test_expired_refresh_token(self, gateway, services, session):
        user = UserFactory()
        email = user.email
        with freeze_time("2030-01-01 00:00:00"):
            pair = gateway.login(email, DEFAULT_PASSWORD).tokens
        ttl = services.tokens.refresh_ttl
        with freeze_time("2030-01-01 00:00:00") as frozen:
            frozen.tick(timedelta(seconds=ttl + 1))
            with pytest.raises(InvalidRefreshToken):
                gateway.refresh(pair.refresh_token)

    def test_token_for_deleted_user(self, gateway, services, session):
        token = services.tokens.issue_refresh_token(999_999)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(token)


class TestFederatedCallback:
    def test_new_identity(self, gateway, session):
        result = gateway.federated_callback(
            FederatedProfile(federated_id="g-1", email="fed@example.com", name="Fed", avatar_url=None)
        )
        assert result.user.is_federated
        assert _slot(result.user.id) == digest(result.tokens.refresh_token)

    def test_links_existing_local_account(self, gateway, session):
        user = UserFactory(email="both@example.com")
        uid = user.id
        result = gateway.federated_callback(
            FederatedProfile(federated_id="g-2", email="both@example.com", name="Both")
        )
        assert result.user.id == uid
        assert result.user.has_password and result.user.is_federated

    def test_deactivated_account(self, gateway, session):
        UserFactory(email="off@example.com", is_active=False)
        with pytest.raises(AccountDeactivated):
            gateway.federated_callback(
                FederatedProfile(federated_id="g-3", email="off@example.com", name="Off")
            )


class TestProfile:
    def test_get_profile_unknown(self, gateway, session):
        with pytest.raises(NotFoundError):
            gateway.get_profile(999_999)

    def test_update_profile_merges_preferences(self, gateway, session):
        user = UserFactory(preferences={"theme": "dark", "language": "en"})
        uid = user.id
        out = gateway.update_profile(uid, ProfileUpdateIn(preferences={"language": "es"}))
        assert out.preferences == {"theme": "dark", "language": "es"}
        out = gateway.update_profile(uid, ProfileUpdateIn(name="Renamed"))
        assert out.name == "Renamed"
        assert out.preferences == {"theme": "dark", "language": "es"}
