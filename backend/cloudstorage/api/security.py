"""
Request authentication middleware.

The access token is read from ``Authorization: Bearer <token>`` first and from
the access-token cookie second. On success the caller is attached to
``flask.g.actor`` as an :class:`~cloudstorage.services.authorization.Actor`.

Decorators
----------
- :func:`require_auth`: reject the request unless authentication succeeds.
- :func:`optional_auth`: authenticate when possible, otherwise continue
  anonymously.
- :func:`require_role`: authenticate, then require one of the given roles.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from flask import current_app, g, request

from cloudstorage.core.container import get_services
from cloudstorage.services._shared.errors import (
    AccountDeactivated,
    AuthenticationError,
    InsufficientPermissions,
    InvalidToken,
    NoToken,
    NotFoundError,
)
from cloudstorage.services.authorization.engine import Actor

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def extract_token() -> str | None:
    """Return the presented access token; the header wins over the cookie."""
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(current_app.config["ACCESS_COOKIE_NAME"]) or None


def authenticate() -> Actor:
    """
    Verify the presented access token and attach the actor.

    :raises NoToken: No token in header or cookie.
    :raises InvalidToken: Bad token, or its user no longer exists.
    :raises TokenExpired: Token past its TTL.
    :raises AccountDeactivated: The user is deactivated.
    """
    g.actor = None
    token = extract_token()
    if token is None:
        raise NoToken()

    svc = get_services()
    verified = svc.tokens.verify_access_token(token)
    try:
        user = svc.gateway.get_profile(verified.user_id)
    except NotFoundError as exc:
        raise InvalidToken() from exc
    if not user.is_active:
        raise AccountDeactivated()

    actor = Actor(id=user.id, email=user.email, role=user.role, name=user.name)
    g.actor = actor
    return actor


def optional_authenticate() -> Actor | None:
    """Like :func:`authenticate`, but any failure leaves the request anonymous."""
    try:
        return authenticate()
    except AuthenticationError as exc:
        if extract_token() is not None:
            log.debug("Ignoring unusable token on optional route", extra={"code": exc.code})
        g.actor = None
        return None


def current_actor() -> Actor | None:
    return g.get("actor")


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        authenticate()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def optional_auth(func: F) -> F:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        optional_authenticate()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(*roles: str) -> Callable[[F], F]:
    """Ensure the authenticated actor holds one of ``roles``."""

    allowed = frozenset(roles)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            actor = authenticate()
            if actor.role not in allowed:
                raise InsufficientPermissions()
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
