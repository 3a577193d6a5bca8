from __future__ import annotations

from typing import Any, Protocol


class Signer(Protocol):
    """
    Port for one named signing key.

    Two independent instances exist (``access`` and ``refresh``); a token
    signed by one must never verify under the other.
    """

    name: str

    def sign(self, claims: dict[str, Any], ttl_seconds: int) -> str:
        """Return a compact signed token carrying ``claims`` plus iat/exp/iss/aud."""
        ...

    def verify(self, token: str) -> dict[str, Any]:
        """
        Return the verified claims.

        :raises TokenExpired: Signature valid but ``exp`` is in the past.
        :raises InvalidToken: Any other signature, issuer, audience or format failure.
        """
        ...
