"""Tests for the read-write Unit of Work."""

from __future__ import annotations

import pytest

from cloudstorage.uow import SQLAlchemyUnitOfWork as RWuow
from tests.factories.user import UserFactory


class TestSQLAlchemyUnitOfWork:
    def test_commits_on_clean_exit(self, session):
        with RWuow() as uow:
            user = UserFactory.build(email="commit@example.com")
            uow.users.add(user)
        with RWuow() as uow:
            assert uow.users.exists_by_email("commit@example.com")

    def test_rolls_back_on_error(self, session):
        with pytest.raises(RuntimeError), RWuow() as uow:
            uow.users.add(UserFactory.build(email="rollback@example.com"))
            raise RuntimeError("boom")
        with RWuow() as uow:
            assert not uow.users.exists_by_email("rollback@example.com")

    def test_repositories_share_the_session(self, session):
        with RWuow() as uow:
            assert uow.users.session is uow.resources.session is uow.shares.session
