"""User repository: lookups, the refresh-token slot and login bookkeeping."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from cloudstorage.models.user import User
from cloudstorage.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never hashes passwords or signs tokens; callers hand it digests and
    already-hashed values.
    """

    model = User

    # ---------------------------- Whitelists ----------------------------

    def _updatable_fields(self):
        """Profile fields a user may change on themselves."""
        return {"name", "preferences", "avatar_url"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def get_by_federated_id(self, federated_id: str) -> User | None:
        stmt = select(User).where(User.federated_id == federated_id)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_verification_digest(self, token_digest: str) -> User | None:
        stmt = select(User).where(User.email_verification_token == token_digest)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_reset_digest(self, token_digest: str) -> User | None:
        stmt = select(User).where(User.password_reset_token == token_digest)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    # ---------------------------- Session slot ----------------------------

    def set_refresh_token_hash(self, user_id: int, token_hash: str | None) -> None:
        """Overwrite the slot unconditionally (login, logout, password change)."""
        self.session.execute(
            update(User).where(User.id == user_id).values(refresh_token_hash=token_hash)
        )

    def swap_refresh_token_hash(self, user_id: int, expected: str, replacement: str | None) -> bool:
        """
        Compare-and-set the refresh-token slot in a single ``UPDATE``.

        :param user_id: Owner of the slot.
        :type user_id: int
        :param expected: Digest that must currently be stored.
        :type expected: str
        :param replacement: Digest to store on success (``None`` empties the slot).
        :type replacement: str | None
        :returns: ``True`` when exactly one row matched and was updated.
        :rtype: bool
        """
        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token_hash == expected)
            .values(refresh_token_hash=replacement)
        )
        return result.rowcount == 1

    # ---------------------------- Bookkeeping ----------------------------

    def touch_last_login(self, user_id: int, when: datetime) -> None:
        self.session.execute(update(User).where(User.id == user_id).values(last_login_at=when))
