"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between
repositories, domain models, and application services.

Every error carries a stable, machine-readable ``code`` so clients can tell
"retry with refresh" (``token_expired``) apart from "log in again"
(``invalid_token``). The translation to HTTP responses (RFC 7807) is handled
by :func:`cloudstorage.services._shared.base.translate_service_error`.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.

    Notes
    -----
    PostgreSQL reports the constraint name; SQLite only reports the columns,
    so callers pass a fallback fragment such as ``"users.email"`` too.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The API layer translates them to ``APIError`` in one place.
    """

    code: str = "bad_request"
    default_message: str = "Request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# --------------------------------------------------------------------------- #
# Generic errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int
    code = "not_found"

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


class InvalidInputError(ServiceError):
    """Raised for input that passed schema validation but breaks a domain rule."""

    code = "invalid_input"
    default_message = "Invalid input."


class InvalidShare(InvalidInputError):
    """Grant targets the owner or an unusable account."""

    code = "invalid_share"
    default_message = "Cannot share this resource with that user."


# --------------------------------------------------------------------------- #
# Account / credential errors
# --------------------------------------------------------------------------- #


class AccountExists(ServiceError):
    """Registration attempted with an email that is already taken."""

    code = "account_exists"
    default_message = "An account with this email already exists."


class InvalidCurrentPassword(ServiceError):
    """Password change rejected because the current password did not verify."""

    code = "invalid_current_password"
    default_message = "Current password is incorrect."


class InvalidVerificationToken(ServiceError):
    """Email-verification or password-reset token is unknown or expired."""

    code = "invalid_verification_token"
    default_message = "Token is invalid or has expired."


# --------------------------------------------------------------------------- #
# Authentication errors (all map to 401)
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Base for failures that leave the caller unauthenticated."""

    code = "unauthorized"
    default_message = "Authentication failed."


class NoToken(AuthenticationError):
    code = "no_token"
    default_message = "Access token required."


class InvalidToken(AuthenticationError):
    code = "invalid_token"
    default_message = "Invalid token."


class TokenExpired(AuthenticationError):
    code = "token_expired"
    default_message = "Token has expired."


class InvalidCredentials(AuthenticationError):
    """Unknown email or wrong password; the two are deliberately indistinguishable."""

    code = "invalid_credentials"
    default_message = "Invalid email or password."


class AccountDeactivated(AuthenticationError):
    code = "account_deactivated"
    default_message = "Account is deactivated."


class InvalidRefreshToken(AuthenticationError):
    """Refresh token is bad, expired or already rotated away. Terminal for the session."""

    code = "invalid_refresh_token"
    default_message = "Invalid refresh token."


class AuthenticationRequired(AuthenticationError):
    """Anonymous caller tried to reach a private resource."""

    code = "auth_required"
    default_message = "Authentication required."


# --------------------------------------------------------------------------- #
# Authorization
# --------------------------------------------------------------------------- #


class AuthorizationError(ServiceError):
    """Authenticated actor lacks the role or resource permission (403)."""

    code = "insufficient_permissions"
    default_message = "Insufficient permissions."


InsufficientPermissions = AuthorizationError


# --------------------------------------------------------------------------- #
# Collaborators
# --------------------------------------------------------------------------- #


class FederatedLoginNotConfigured(ServiceError):
    code = "oauth_not_configured"
    default_message = "Federated login is not configured."


class FederatedLoginFailed(ServiceError):
    """Identity provider exchange failed or returned an unusable profile."""

    code = "oauth_failed"
    default_message = "Federated login failed."


class StorageError(ServiceError):
    """Blob storage backend failed."""

    code = "storage_error"
    default_message = "Storage backend error."
