"""
Google OAuth 2.0 authorization-code client.

Implements :class:`~cloudstorage.services._shared.ports.IdentityProvider`
on top of a :class:`requests.Session`.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import requests

from cloudstorage.services._shared.errors import FederatedLoginFailed
from cloudstorage.services._shared.ports.identity_provider import (
    FederatedProfile,
    IdentityProvider,
)

log = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPE = "openid email profile"


class GoogleOAuthClient(IdentityProvider):
    """
    Exchange authorization codes for a verified Google profile.

    :param client_id: OAuth client id.
    :param client_secret: OAuth client secret.
    :param redirect_uri: Callback URL registered with Google.
    :param http: Optional preconfigured :class:`requests.Session`.
    :param timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.http = http or requests.Session()
        self.timeout = timeout

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPE,
            "state": state,
            "prompt": "select_account",
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> FederatedProfile:
        """
        Exchange ``code`` and read the userinfo document.

        :raises FederatedLoginFailed: Any HTTP or parse failure, or an
            unverified email.
        """
        try:
            token_response = self.http.post(
                TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                allow_redirects=False,
            )
            token_response.raise_for_status()
            access_token = _json(token_response).get("access_token")
            if not access_token:
                raise FederatedLoginFailed("Provider returned no access token.")

            info_response = self.http.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            info_response.raise_for_status()
            info = _json(info_response)
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            log.error("OAuth exchange rejected", extra={"status_code": status})
            raise FederatedLoginFailed() from exc
        except requests.RequestException as exc:
            log.error("OAuth exchange failed", extra={"error": type(exc).__name__})
            raise FederatedLoginFailed() from exc

        return _profile_from_userinfo(info)


def _json(response: requests.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise FederatedLoginFailed("Provider returned malformed JSON.") from exc
    if not isinstance(payload, dict):
        raise FederatedLoginFailed("Provider returned an unexpected document.")
    return payload


def _profile_from_userinfo(info: dict[str, Any]) -> FederatedProfile:
    subject = info.get("sub") or info.get("id")
    email = info.get("email")
    if not subject or not email:
        raise FederatedLoginFailed("Provider profile lacks an id or email.")
    if info.get("email_verified") not in (True, "true"):
        raise FederatedLoginFailed("Provider email is not verified.")
    name = (info.get("name") or "").strip() or str(email).split("@", 1)[0]
    return FederatedProfile(
        federated_id=str(subject),
        email=str(email),
        name=name,
        avatar_url=info.get("picture"),
    )
