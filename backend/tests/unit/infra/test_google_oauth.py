"""Tests for GoogleOAuthClient using the ``responses`` HTTP mock."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from cloudstorage.infra.oauth.google import TOKEN_URL, USERINFO_URL, GoogleOAuthClient
from cloudstorage.services._shared.errors import FederatedLoginFailed

USERINFO = {
    "sub": "1234567890",
    "email": "ada@example.com",
    "email_verified": True,
    "name": "Ada Lovelace",
    "picture": "https://example.com/ada.png",
}


@pytest.fixture
def client():
    return GoogleOAuthClient(
        client_id="cid",
        client_secret="csecret",
        redirect_uri="http://localhost:5000/api/v1/auth/oauth/callback",
    )


def test_authorization_url(client):
    url = urlparse(client.authorization_url("state-123"))
    query = parse_qs(url.query)
    assert url.netloc == "accounts.google.com"
    assert query["state"] == ["state-123"]
    assert query["client_id"] == ["cid"]
    assert query["response_type"] == ["code"]
    assert "email" in query["scope"][0]


@responses.activate
def test_fetch_profile(client):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "at-1"}, status=200)
    responses.add(responses.GET, USERINFO_URL, json=USERINFO, status=200)

    profile = client.fetch_profile("auth-code")

    assert profile.federated_id == "1234567890"
    assert profile.email == "ada@example.com"
    assert profile.name == "Ada Lovelace"
    assert profile.avatar_url == "https://example.com/ada.png"
    assert "code=auth-code" in responses.calls[0].request.body
    assert "grant_type=authorization_code" in responses.calls[0].request.body
    assert responses.calls[1].request.headers["Authorization"] == "Bearer at-1"


@responses.activate
def test_name_falls_back_to_email_local_part(client):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "at"}, status=200)
    responses.add(responses.GET, USERINFO_URL, json={**USERINFO, "name": "  "}, status=200)
    assert client.fetch_profile("c").name == "ada"


@responses.activate
def test_rejected_code(client):
    responses.add(responses.POST, TOKEN_URL, json={"error": "invalid_grant"}, status=400)
    with pytest.raises(FederatedLoginFailed):
        client.fetch_profile("bad")


@responses.activate
def test_network_failure(client):
    responses.add(responses.POST, TOKEN_URL, body=requests.ConnectionError("down"))
    with pytest.raises(FederatedLoginFailed):
        client.fetch_profile("c")


@responses.activate
def test_missing_access_token(client):
    responses.add(responses.POST, TOKEN_URL, json={}, status=200)
    with pytest.raises(FederatedLoginFailed):
        client.fetch_profile("c")


@responses.activate
def test_malformed_json(client):
    responses.add(responses.POST, TOKEN_URL, body="<html>", status=200)
    with pytest.raises(FederatedLoginFailed):
        client.fetch_profile("c")


@pytest.mark.parametrize(
    "override",
    [{"email_verified": False}, {"email_verified": None}, {"email": None}, {"sub": None}],
)
@responses.activate
def test_unusable_profile(client, override):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "at"}, status=200)
    responses.add(responses.GET, USERINFO_URL, json={**USERINFO, **override}, status=200)
    with pytest.raises(FederatedLoginFailed):
        client.fetch_profile("c")
