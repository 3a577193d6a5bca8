"""End-to-end tests for the federated login redirect flow."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from cloudstorage.core.container import EXTENSION_KEY, build_services
from cloudstorage.models.user import User
from cloudstorage.services._shared.errors import FederatedLoginFailed
from cloudstorage.services._shared.ports import FederatedProfile
from tests.factories.user import UserFactory

BASE = "/api/v1/auth/oauth"


class FakeIdentityProvider:
    """Hands out a fixed profile for the code ``good``."""

    def __init__(self, profile: FederatedProfile) -> None:
        self.profile = profile
        self.codes: list[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://idp.example.com/authorize?state={state}"

    def fetch_profile(self, code: str) -> FederatedProfile:
        self.codes.append(code)
        if code != "good":
            raise FederatedLoginFailed("bad code")
        return self.profile


@pytest.fixture
def provider(app, services, mailer, blobs):
    fake = FakeIdentityProvider(
        FederatedProfile(federated_id="google-123", email="fed@example.com", name="Fed User")
    )
    app.extensions[EXTENSION_KEY] = build_services(
        app, sessions=services.sessions, mailer=mailer, blobs=blobs, identity_provider=fake
    )
    return fake


def _start(client) -> str:
    resp = client.get(f"{BASE}/start")
    assert resp.status_code == 302
    return parse_qs(urlparse(resp.headers["Location"]).query)["state"][0]


def _query(resp) -> dict[str, list[str]]:
    return parse_qs(urlparse(resp.headers["Location"]).query)


def test_start_without_provider(client):
    resp = client.get(f"{BASE}/start")

    assert resp.status_code == 501
    assert resp.get_json()["code"] == "oauth_not_configured"


def test_start_sets_state_cookie(client, provider):
    resp = client.get(f"{BASE}/start")

    assert resp.headers["Location"].startswith("https://idp.example.com/authorize")
    cookie = next(h for h in resp.headers.getlist("Set-Cookie") if h.startswith("oauth_state="))
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie


def test_callback_creates_account_and_session(client, provider, session):
    state = _start(client)

    resp = client.get(f"{BASE}/callback", query_string={"code": "good", "state": state})

    assert resp.status_code == 302
    assert resp.headers["Location"].startswith("http://localhost:5173/")
    assert _query(resp) == {"auth": ["success"]}
    assert provider.codes == ["good"]
    profile = client.get("/api/v1/auth/profile").get_json()["data"]["user"]
    assert profile["email"] == "fed@example.com"
    assert profile["is_federated"] is True
    assert profile["has_password"] is False


def test_callback_links_existing_email(client, provider, session):
    uid = UserFactory(email="fed@example.com", is_email_verified=False).id
    state = _start(client)

    client.get(f"{BASE}/callback", query_string={"code": "good", "state": state})

    user = session.get(User, uid)
    assert user.federated_id == "google-123"
    assert user.is_email_verified is True
    assert user.password_hash is not None


def test_callback_rejects_state_mismatch(client, provider):
    _start(client)

    resp = client.get(f"{BASE}/callback", query_string={"code": "good", "state": "forged"})

    assert _query(resp) == {"error": ["oauth_failed"]}
    assert provider.codes == []


def test_callback_without_state_cookie(client, provider):
    resp = client.get(f"{BASE}/callback", query_string={"code": "good", "state": "anything"})

    assert _query(resp) == {"error": ["oauth_failed"]}


def test_callback_provider_failure(client, provider):
    state = _start(client)

    resp = client.get(f"{BASE}/callback", query_string={"code": "bad", "state": state})

    assert _query(resp) == {"error": ["oauth_failed"]}


def test_callback_deactivated_account(client, provider, session):
    UserFactory(email="fed@example.com", is_active=False)
    state = _start(client)

    resp = client.get(f"{BASE}/callback", query_string={"code": "good", "state": state})

    assert _query(resp) == {"error": ["oauth_callback_failed"]}
    assert client.get("/api/v1/auth/profile").status_code == 401
