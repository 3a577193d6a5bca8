"""Tests for Resource / ResourceShare models and content-type classification."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from cloudstorage.models.resource import ResourceShare, classify_content_type
from tests.factories.resource import ResourceFactory, ResourceShareFactory
from tests.factories.user import UserFactory


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("image/png", "image"),
        ("IMAGE/JPEG", "image"),
        ("video/mp4", "video"),
        ("audio/mpeg", "audio"),
        ("application/pdf", "document"),
        ("text/plain", "document"),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "document"),
        ("application/zip", "other"),
        ("application/octet-stream", "other"),
        ("", "other"),
        (None, "other"),
    ],
)
def test_classify_content_type(content_type, expected):
    assert classify_content_type(content_type) == expected


class TestResource:
    def test_defaults_and_file_type(self, session):
        resource = ResourceFactory(content_type="image/png")
        assert resource.file_type == "image"
        assert resource.download_count == 0
        assert resource.is_deleted is False
        assert resource.shares == []

    def test_owner_is_immutable(self, session):
        resource = ResourceFactory()
        other = UserFactory()
        with pytest.raises(ValueError):
            resource.owner_id = other.id

    def test_storage_key_unique(self, session):
        ResourceFactory(storage_key="same")
        with pytest.raises(IntegrityError):
            ResourceFactory(storage_key="same")
        session.rollback()

    def test_soft_delete_stamps_time(self, session):
        resource = ResourceFactory()
        resource.soft_delete()
        session.commit()
        assert resource.is_deleted is True
        assert resource.deleted_at is not None


class TestResourceShare:
    def test_one_grant_per_user(self, session):
        grant = ResourceShareFactory()
        session.add(
            ResourceShare(resource_id=grant.resource_id, user_id=grant.user_id, permission="write")
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_permission_validated(self):
        with pytest.raises(ValueError):
            ResourceShare(resource_id=1, user_id=2, permission="admin")
