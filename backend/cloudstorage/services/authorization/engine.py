"""
AuthorizationEngine
===================

Resource-level permission resolution plus share-grant maintenance.

Resolution order for :meth:`AuthorizationEngine.has_access`:

1. Soft-deleted resources deny everything.
2. The owner passes every permission.
3. ``read`` on a public resource passes for every caller, anonymous included.
4. Otherwise the actor's grant decides: ``read`` is satisfied by a ``read``
   or ``write`` grant, ``write`` only by ``write``.
5. Anything else is denied.

Ownership and public read short-circuit before grants are consulted, so an
owner who also appears in the share list with a lesser grant keeps full
access. The checks read the grant list at call time; a downgraded grant takes
effect on the next check and does not cancel a request already past it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from cloudstorage.models.base import utcnow
from cloudstorage.models.resource import Permission
from cloudstorage.services._shared.base import BaseService
from cloudstorage.services._shared.errors import InvalidShare, NotFoundError, violates

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated caller attached to the request context."""

    id: int
    email: str
    role: str = "user"
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class GrantLike(Protocol):
    user_id: int
    permission: str


class ResourceLike(Protocol):
    owner_id: int
    is_public: bool
    is_deleted: bool

    @property
    def shares(self) -> Iterable[GrantLike]: ...


@dataclass(frozen=True, slots=True)
class ShareOut:
    resource_id: int
    user_id: int
    email: str
    name: str
    permission: str
    granted_at: datetime


def _grant_of(resource: ResourceLike, user_id: int) -> str | None:
    for grant in resource.shares:
        if grant.user_id == user_id:
            return str(grant.permission)
    return None


class AuthorizationEngine(BaseService):
    """
    Decide and maintain access to resources.

    ``has_access``, ``effective_permission`` and ``can_manage`` are pure and
    work on any object exposing ``owner_id``, ``is_public``, ``is_deleted`` and
    ``shares`` (each with ``user_id`` and ``permission``).
    """

    # --------------------------------------------------------------------- #
    # Pure checks
    # --------------------------------------------------------------------- #

    @staticmethod
    def has_access(actor: Actor | None, resource: ResourceLike, permission: Permission | str) -> bool:
        wanted = Permission(permission)
        if resource.is_deleted:
            return False
        if actor is not None and actor.id == resource.owner_id:
            return True
        if wanted is Permission.READ and resource.is_public:
            return True
        if actor is None:
            return False
        granted = _grant_of(resource, actor.id)
        if granted is None:
            return False
        if wanted is Permission.READ:
            return granted in (Permission.READ, Permission.WRITE)
        return granted == Permission.WRITE

    @staticmethod
    def effective_permission(actor: Actor | None, resource: ResourceLike) -> str | None:
        """Return ``owner``, ``write``, ``read`` or ``None`` for display purposes."""
        if resource.is_deleted:
            return None
        if actor is not None:
            if actor.id == resource.owner_id:
                return "owner"
            granted = _grant_of(resource, actor.id)
            if granted is not None:
                return granted
        return Permission.READ.value if resource.is_public else None

    @staticmethod
    def can_manage(actor: Actor | None, resource: ResourceLike) -> bool:
        """Owner or admin: may delete, toggle visibility and edit grants."""
        if actor is None or resource.is_deleted:
            return False
        return actor.id == resource.owner_id or actor.is_admin

    # --------------------------------------------------------------------- #
    # Grant maintenance
    # --------------------------------------------------------------------- #

    def set_share(self, resource_id: int, user_id: int, permission: Permission | str) -> ShareOut:
        """
        Upsert the grant of ``user_id`` on ``resource_id``.

        The resource row is locked for the duration of the upsert, and the
        unique ``(resource_id, user_id)`` constraint backs it up, so two
        concurrent edits never leave two grants for one user.

        :raises NotFoundError: Unknown/deleted resource or unknown/inactive user.
        :raises InvalidShare: ``user_id`` owns the resource.
        """
        level = Permission(permission).value
        try:
            return self._upsert_share(resource_id, user_id, level)
        except IntegrityError as exc:
            if not (
                violates(exc, "uq_resource_shares_resource_user")
                or violates(exc, "resource_shares.resource_id")
            ):
                raise
            # Lost the insert race: the row exists now, update it.
            return self._upsert_share(resource_id, user_id, level)

    def _upsert_share(self, resource_id: int, user_id: int, level: str) -> ShareOut:
        with self.rw_uow() as uow:
            resource = uow.resources.get_active_for_update(resource_id)
            if resource is None:
                raise NotFoundError("Resource", resource_id)
            target = uow.users.get(user_id)
            if target is None or not target.is_active:
                raise NotFoundError("User", user_id)
            if target.id == resource.owner_id:
                raise InvalidShare("The owner already has full access.")

            grant = uow.shares.get_grant(resource_id, user_id)
            if grant is None:
                grant = uow.shares.model(resource_id=resource_id, user_id=user_id, permission=level)
                uow.shares.add(grant)
            else:
                grant.permission = level
                grant.granted_at = utcnow()
                uow.shares.flush()

            out = ShareOut(
                resource_id=resource_id,
                user_id=user_id,
                email=target.email,
                name=target.name,
                permission=grant.permission,
                granted_at=grant.granted_at,
            )

        log.info(
            "Share granted",
            extra={"resource_id": resource_id, "target_user_id": user_id, "permission": level},
        )
        return out

    def revoke_share(self, resource_id: int, user_id: int) -> bool:
        """
        Remove the grant of ``user_id``. Idempotent.

        :returns: ``True`` when a grant was removed, ``False`` when none existed.
        :raises NotFoundError: Unknown or deleted resource.
        """
        with self.rw_uow() as uow:
            resource = uow.resources.get_active_for_update(resource_id)
            if resource is None:
                raise NotFoundError("Resource", resource_id)
            grant = uow.shares.get_grant(resource_id, user_id)
            if grant is None:
                return False
            uow.shares.delete(grant)

        log.info("Share revoked", extra={"resource_id": resource_id, "target_user_id": user_id})
        return True
