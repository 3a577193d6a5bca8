"""
Tests for AuthorizationEngine.

The pure checks run against plain stand-ins so every combination of caller,
visibility, grant and deletion state is covered without touching the
database; grant maintenance runs against real rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from cloudstorage.models.resource import Permission, ResourceShare
from cloudstorage.repositories.resource import ResourceShareRepository
from cloudstorage.services._shared.errors import InvalidShare, NotFoundError
from cloudstorage.services.authorization import Actor, AuthorizationEngine
from tests.factories.resource import ResourceFactory, ResourceShareFactory
from tests.factories.user import AdminFactory, UserFactory

OWNER = Actor(id=1, email="owner@example.com")
READER = Actor(id=2, email="reader@example.com")
WRITER = Actor(id=3, email="writer@example.com")
STRANGER = Actor(id=4, email="stranger@example.com")
ADMIN = Actor(id=5, email="admin@example.com", role="admin")


@dataclass
class Grant:
    user_id: int
    permission: str


@dataclass
class Doc:
    owner_id: int = OWNER.id
    is_public: bool = False
    is_deleted: bool = False
    shares: list[Grant] = field(
        default_factory=lambda: [Grant(READER.id, "read"), Grant(WRITER.id, "write")]
    )


engine = AuthorizationEngine()

#: (actor, is_public, expected read, expected write)
MATRIX = [
    (OWNER, False, True, True),
    (OWNER, True, True, True),
    (READER, False, True, False),
    (READER, True, True, False),
    (WRITER, False, True, True),
    (WRITER, True, True, True),
    (STRANGER, False, False, False),
    (STRANGER, True, True, False),
    (ADMIN, False, False, False),
    (ADMIN, True, True, False),
    (None, False, False, False),
    (None, True, True, False),
]


@pytest.mark.parametrize("actor, is_public, can_read, can_write", MATRIX)
def test_access_matrix(actor, is_public, can_read, can_write):
    doc = Doc(is_public=is_public)
    assert engine.has_access(actor, doc, Permission.READ) is can_read
    assert engine.has_access(actor, doc, "write") is can_write


@pytest.mark.parametrize("actor", [OWNER, READER, WRITER, STRANGER, ADMIN, None])
def test_deleted_resource_denies_everyone(actor):
    doc = Doc(is_public=True, is_deleted=True)
    assert engine.has_access(actor, doc, "read") is False
    assert engine.has_access(actor, doc, "write") is False
    assert engine.effective_permission(actor, doc) is None
    assert engine.can_manage(actor, doc) is False


def test_owner_listed_with_lesser_grant_keeps_full_access():
    doc = Doc(shares=[Grant(OWNER.id, "read")])
    assert engine.has_access(OWNER, doc, "write") is True
    assert engine.effective_permission(OWNER, doc) == "owner"


def test_unknown_permission_is_rejected():
    with pytest.raises(ValueError):
        engine.has_access(OWNER, Doc(), "delete")


@pytest.mark.parametrize(
    "actor, is_public, expected",
    [
        (OWNER, False, "owner"),
        (READER, False, "read"),
        (WRITER, True, "write"),
        (STRANGER, True, "read"),
        (STRANGER, False, None),
        (None, True, "read"),
        (None, False, None),
    ],
)
def test_effective_permission(actor, is_public, expected):
    assert engine.effective_permission(actor, Doc(is_public=is_public)) == expected


@pytest.mark.parametrize(
    "actor, expected",
    [(OWNER, True), (ADMIN, True), (WRITER, False), (READER, False), (None, False)],
)
def test_can_manage(actor, expected):
    assert engine.can_manage(actor, Doc()) is expected


def test_downgrade_applies_to_next_check():
    doc = Doc()
    assert engine.has_access(WRITER, doc, "write") is True
    doc.shares[1].permission = "read"
    assert engine.has_access(WRITER, doc, "write") is False
    assert engine.has_access(WRITER, doc, "read") is True


class TestGrantMaintenance:
    def test_set_share_creates_grant(self, session):
        resource = ResourceFactory()
        target = UserFactory()
        rid, tid, email = resource.id, target.id, target.email

        out = engine.set_share(rid, tid, "read")

        assert out.user_id == tid
        assert out.email == email
        assert out.permission == "read"
        assert out.granted_at is not None

    def test_set_share_replaces_existing_grant(self, session):
        grant = ResourceShareFactory(permission="read")
        rid, uid = grant.resource_id, grant.user_id

        out = engine.set_share(rid, uid, Permission.WRITE)

        assert out.permission == "write"
        assert ResourceShareRepository().get_grant(rid, uid).permission == "write"
        assert session.query(ResourceShare).filter_by(resource_id=rid).count() == 1

    def test_owner_cannot_be_a_grantee(self, session):
        resource = ResourceFactory()
        with pytest.raises(InvalidShare):
            engine.set_share(resource.id, resource.owner_id, "read")

    def test_inactive_or_missing_user_cannot_be_a_grantee(self, session):
        resource = ResourceFactory()
        inactive = UserFactory(is_active=False)
        with pytest.raises(NotFoundError):
            engine.set_share(resource.id, inactive.id, "read")
        with pytest.raises(NotFoundError):
            engine.set_share(resource.id, 999_999, "read")

    def test_deleted_resource_cannot_be_shared(self, session):
        resource = ResourceFactory()
        resource.soft_delete()
        session.commit()
        with pytest.raises(NotFoundError):
            engine.set_share(resource.id, UserFactory().id, "read")

    def test_admin_may_be_granted(self, session):
        resource = ResourceFactory()
        admin = AdminFactory()
        assert engine.set_share(resource.id, admin.id, "write").permission == "write"

    def test_revoke_share_is_idempotent(self, session):
        grant = ResourceShareFactory()
        rid, uid = grant.resource_id, grant.user_id

        assert engine.revoke_share(rid, uid) is True
        assert engine.revoke_share(rid, uid) is False

    def test_revoke_on_missing_resource(self, session):
        with pytest.raises(NotFoundError):
            engine.revoke_share(999_999, 1)
