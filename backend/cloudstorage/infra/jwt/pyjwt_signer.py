"""PyJWT-backed implementation of the :class:`Signer` port."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from cloudstorage.services._shared.errors import InvalidToken, TokenExpired
from cloudstorage.services._shared.ports.signer import Signer

log = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub", "type"]


class PyJWTSigner(Signer):
    """
    HMAC signer holding exactly one secret.

    :param name: Key name used in logs (``"access"`` or ``"refresh"``).
    :param secret: Shared secret. Never logged.
    :param issuer: Fixed ``iss`` claim written and required on verify.
    :param audience: Fixed ``aud`` claim written and required on verify.
    :param algorithm: JWS algorithm, ``HS256`` by default.
    """

    def __init__(
        self,
        *,
        name: str,
        secret: str,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
        leeway: int = 0,
    ) -> None:
        if not secret:
            raise ValueError(f"Signer {name!r} requires a non-empty secret.")
        self.name = name
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._algorithm = algorithm
        self._leeway = leeway

    def sign(self, claims: dict[str, Any], ttl_seconds: int) -> str:
        now = datetime.now(UTC)
        payload = {
            **claims,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            log.debug("Token rejected by %s signer: %s", self.name, type(exc).__name__)
            raise InvalidToken() from exc
