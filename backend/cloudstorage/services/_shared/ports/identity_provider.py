from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class FederatedProfile:
    """
    Identity asserted by an external provider after a successful login.

    :ivar federated_id: Provider-scoped stable subject.
    :ivar email: Email verified by the provider.
    :ivar name: Display name, may be empty.
    :ivar avatar_url: Optional picture URL.
    """

    federated_id: str
    email: str
    name: str
    avatar_url: str | None = None


class IdentityProvider(Protocol):
    """Port for an OAuth 2.0 authorization-code identity provider."""

    def authorization_url(self, state: str) -> str: ...

    def fetch_profile(self, code: str) -> FederatedProfile:
        """
        Exchange ``code`` and return the caller's profile.

        :raises FederatedLoginFailed: On any provider or parsing failure.
        """
        ...
