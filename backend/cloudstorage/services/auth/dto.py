from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cloudstorage.services.credentials.dto import UserOut
from cloudstorage.services.tokens.dto import TokenPair


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Outcome of register/login/federated login: the user plus a fresh pair."""

    user: UserOut
    tokens: TokenPair


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    name: str | None = None
    preferences: dict[str, Any] | None = None
