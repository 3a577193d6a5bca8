"""Tests for request authentication helpers."""

from __future__ import annotations

import pytest
from flask import g

from cloudstorage.api.security import (
    authenticate,
    current_actor,
    extract_token,
    optional_authenticate,
)
from cloudstorage.services._shared.errors import (
    AccountDeactivated,
    InvalidToken,
    NoToken,
    TokenExpired,
)
from tests.factories.user import AdminFactory, UserFactory


def _cookie_header(app, value: str) -> dict[str, str]:
    return {"Cookie": f"{app.config['ACCESS_COOKIE_NAME']}={value}"}


class TestExtractToken:
    def test_bearer_header(self, app):
        with app.test_request_context(headers={"Authorization": "Bearer abc"}):
            assert extract_token() == "abc"

    def test_cookie_fallback(self, app):
        with app.test_request_context(headers=_cookie_header(app, "from-cookie")):
            assert extract_token() == "from-cookie"

    def test_header_wins_over_cookie(self, app):
        headers = {"Authorization": "Bearer from-header", **_cookie_header(app, "from-cookie")}
        with app.test_request_context(headers=headers):
            assert extract_token() == "from-header"

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer ", "Bearer", "token"])
    def test_non_bearer_headers_are_ignored(self, app, header):
        with app.test_request_context(headers={"Authorization": header}):
            assert extract_token() is None


class TestAuthenticate:
    def test_attaches_actor(self, app, services, session):
        user = AdminFactory()
        uid, email = user.id, user.email
        token = services.tokens.issue_access_token(uid)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            actor = authenticate()
            assert actor.id == uid
            assert actor.email == email
            assert actor.is_admin
            assert current_actor() is actor

    def test_missing_token(self, app, services):
        with app.test_request_context(), pytest.raises(NoToken):
            authenticate()

    def test_refresh_token_is_rejected(self, app, services, session):
        token = services.tokens.issue_refresh_token(UserFactory().id)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(InvalidToken):
                authenticate()
            assert g.actor is None

    def test_unknown_user(self, app, services):
        token = services.tokens.issue_access_token(999_999)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(InvalidToken):
                authenticate()

    def test_deactivated_user(self, app, services, session):
        token = services.tokens.issue_access_token(UserFactory(is_active=False).id)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(AccountDeactivated):
                authenticate()

    def test_expired_token(self, app, services, session):
        signer = services.tokens._access
        token = signer.sign({"sub": str(UserFactory().id), "type": "access"}, -1)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(TokenExpired):
                authenticate()


class TestOptionalAuthenticate:
    def test_anonymous(self, app, services):
        with app.test_request_context():
            assert optional_authenticate() is None
            assert current_actor() is None

    def test_bad_token_degrades_to_anonymous(self, app, services):
        with app.test_request_context(headers={"Authorization": "Bearer garbage"}):
            assert optional_authenticate() is None
            assert current_actor() is None

    def test_valid_token(self, app, services, session):
        uid = UserFactory().id
        token = services.tokens.issue_access_token(uid)
        with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            assert optional_authenticate().id == uid
