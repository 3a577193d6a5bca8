# comments in English; reST docstrings
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from cloudstorage.models.base import digest
from cloudstorage.services._shared.ports.session_store import SessionStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisSessionStore(SessionStore):
    """
    Redis-backed single-slot refresh-token store.

    One key per user holds the digest of the live refresh token and expires
    together with it.

    :param r: A Redis client (already connected).
    :param ttl_seconds: Slot lifetime, normally the refresh-token TTL.
    :param max_retries: Optimistic-lock retries before giving up on a swap.
    """

    r: redis.Redis
    ttl_seconds: int
    max_retries: int = 10

    @staticmethod
    def _k(user_id: int) -> str:
        return f"session:refresh:{user_id}"

    def persist(self, user_id: int, token: str) -> None:
        self.r.set(self._k(user_id), digest(token), ex=max(1, int(self.ttl_seconds)))

    def validate_and_consume(
        self, user_id: int, presented: str, replacement: str | None = None
    ) -> bool:
        """
        Compare-and-set the slot with WATCH/MULTI/EXEC.

        A concurrent writer touching the key between the read and ``EXEC``
        aborts the transaction; the loop then re-reads the slot, which no
        longer matches if the other writer consumed it.
        """
        key = self._k(user_id)
        expected = digest(presented)
        for _ in range(self.max_retries):
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    stored = p.get(key)
                    if isinstance(stored, bytes):
                        stored = stored.decode()
                    if stored is None or not hmac.compare_digest(stored, expected):
                        p.unwatch()
                        return False
                    p.multi()
                    if replacement is None:
                        p.delete(key)
                    else:
                        p.set(key, digest(replacement), ex=max(1, int(self.ttl_seconds)))
                    p.execute()
                    return True
            except redis.WatchError:
                continue
        log.warning("Refresh slot swap gave up after retries", extra={"user_id": user_id})
        return False

    def clear(self, user_id: int) -> None:
        self.r.delete(self._k(user_id))
