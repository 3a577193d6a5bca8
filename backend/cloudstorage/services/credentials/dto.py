"""
DTOs for the account/credential layer.

``UserOut`` is the only user representation that leaves the service layer; it
never carries password hashes or token digests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cloudstorage.models.user import User


@dataclass(frozen=True, slots=True)
class UserOut:
    """Public-safe projection of a :class:`~cloudstorage.models.user.User`."""

    id: int
    email: str
    name: str
    role: str
    avatar_url: str | None
    is_email_verified: bool
    is_active: bool
    has_password: bool
    is_federated: bool
    preferences: dict[str, Any] = field(default_factory=dict)
    last_login_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            avatar_url=user.avatar_url,
            is_email_verified=bool(user.is_email_verified),
            is_active=bool(user.is_active),
            has_password=user.has_password,
            is_federated=user.federated_id is not None,
            preferences=dict(user.preferences or {}),
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )


@dataclass(frozen=True, slots=True)
class LocalAccountIn:
    email: str
    password: str
    name: str


@dataclass(frozen=True, slots=True)
class FederatedAccountIn:
    federated_id: str
    email: str
    name: str
    avatar_url: str | None = None
