"""Tests for the User model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from cloudstorage.models.base import digest
from cloudstorage.models.user import User
from tests.factories.user import FederatedUserFactory, UserFactory


class TestUser:
    def test_email_normalized_and_unique(self, session):
        u1 = User(email="  Alice@Example.com ", name="Alice", password_hash="h")
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        session.add(User(email="alice@example.com", name="Other", password_hash="h"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_federated_id_unique(self, session):
        FederatedUserFactory(federated_id="sub-1")
        session.add(User(email="x@example.com", name="X", federated_id="sub-1"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_requires_password_or_federated_id(self, session):
        session.add(User(email="ghost@example.com", name="Ghost"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_defaults(self, session):
        u = User(email="d@example.com", name="D", password_hash="h")
        session.add(u)
        session.commit()
        assert u.role == "user"
        assert u.is_active is True
        assert u.is_email_verified is False
        assert u.preferences == {}
        assert u.refresh_token_hash is None

    def test_derived_flags(self):
        admin = User(email="a@example.com", name="A", role="admin", password_hash="h")
        federated = User(email="f@example.com", name="F", federated_id="sub")
        assert admin.is_admin and admin.has_password
        assert not federated.is_admin and not federated.has_password

    def test_basic_validations(self):
        with pytest.raises(ValueError):
            User(email="", name="u")
        with pytest.raises(ValueError):
            User(email="not-an-email", name="u")
        with pytest.raises(ValueError):
            User(email="x@example.com", name="   ")
        with pytest.raises(ValueError):
            User(email="x@example.com", name="x", role="root")

    def test_verification_token_is_stored_as_digest(self):
        u = User(email="v@example.com", name="V", password_hash="h")
        u.start_email_verification("raw-token")
        assert u.email_verification_token == digest("raw-token")
        u.mark_email_verified()
        assert u.is_email_verified is True
        assert u.email_verification_token is None

    def test_password_reset_window(self):
        now = datetime(2030, 1, 1, tzinfo=UTC)
        u = User(email="r@example.com", name="R", password_hash="h")
        u.start_password_reset("reset", now + timedelta(hours=1))
        assert u.password_reset_token == digest("reset")
        assert u.password_reset_is_valid(now)
        assert not u.password_reset_is_valid(now + timedelta(hours=2))
        u.clear_password_reset()
        assert not u.password_reset_is_valid(now)

    def test_reset_expiry_survives_round_trip(self, session):
        user = UserFactory()
        now = datetime.now(UTC)
        user.start_password_reset("reset", now + timedelta(minutes=5))
        session.commit()
        # SQLite hands back naive datetimes; the check must still compare.
        assert user.password_reset_is_valid(now)
