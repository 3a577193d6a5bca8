"""Refresh-token slot stored on the ``users`` row."""

from __future__ import annotations

from cloudstorage.models.base import digest
from cloudstorage.services._shared.ports.session_store import SessionStore
from cloudstorage.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class DatabaseSessionStore(SessionStore):
    """
    Keep the digest of the live refresh token in ``users.refresh_token_hash``.

    Every call runs in its own read-write Unit of Work, so callers must not
    invoke it from inside another one. Rotation is a single conditional
    ``UPDATE ... WHERE refresh_token_hash = :presented``; the database
    serializes concurrent updates of the row, so at most one of two racing
    refreshes sees a matching row.
    """

    def persist(self, user_id: int, token: str) -> None:
        with SQLAlchemyUnitOfWork() as uow:
            uow.users.set_refresh_token_hash(user_id, digest(token))

    def validate_and_consume(
        self, user_id: int, presented: str, replacement: str | None = None
    ) -> bool:
        with SQLAlchemyUnitOfWork() as uow:
            return uow.users.swap_refresh_token_hash(
                user_id,
                digest(presented),
                digest(replacement) if replacement is not None else None,
            )

    def clear(self, user_id: int) -> None:
        with SQLAlchemyUnitOfWork() as uow:
            uow.users.set_refresh_token_hash(user_id, None)
