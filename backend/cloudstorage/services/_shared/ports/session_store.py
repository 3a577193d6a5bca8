from __future__ import annotations

import hmac
import threading
from typing import Protocol

from cloudstorage.models.base import digest


class SessionStore(Protocol):
    """
    Single-slot refresh-token store, one slot per user.

    Adapters keep a digest of the token, never the raw value. The check of the
    presented token and the write of its replacement MUST happen as one atomic
    compare-and-set per user so that two concurrent refreshes presenting the
    same token cannot both succeed.
    """

    def persist(self, user_id: int, token: str) -> None:
        """Overwrite the slot with ``token`` (login, register, federated login)."""
        ...

    def validate_and_consume(
        self, user_id: int, presented: str, replacement: str | None = None
    ) -> bool:
        """
        Atomically check ``presented`` against the slot and swap in ``replacement``.

        :param user_id: Slot owner.
        :param presented: Refresh token supplied by the client.
        :param replacement: Token to store on success; ``None`` empties the slot.
        :returns: ``True`` only when ``presented`` matched the stored value.
        """
        ...

    def clear(self, user_id: int) -> None:
        """Empty the slot. Idempotent."""
        ...


class InMemorySessionStore(SessionStore):
    """Thread-safe in-memory adapter for tests and single-process development."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[int, str] = {}

    def persist(self, user_id: int, token: str) -> None:
        with self._lock:
            self._slots[user_id] = digest(token)

    def validate_and_consume(
        self, user_id: int, presented: str, replacement: str | None = None
    ) -> bool:
        with self._lock:
            stored = self._slots.get(user_id)
            if stored is None or not hmac.compare_digest(stored, digest(presented)):
                return False
            if replacement is None:
                self._slots.pop(user_id, None)
            else:
                self._slots[user_id] = digest(replacement)
            return True

    def clear(self, user_id: int) -> None:
        with self._lock:
            self._slots.pop(user_id, None)
