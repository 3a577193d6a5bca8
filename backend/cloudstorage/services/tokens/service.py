"""Issue and verify the two-tier token scheme.

Access tokens are signed with the ``access`` signer and live for minutes;
refresh tokens are signed with the independent ``refresh`` signer and live
for days. The service holds no mutable state.
"""

from __future__ import annotations

from typing import Any

from cloudstorage.services._shared.errors import InvalidToken
from cloudstorage.services._shared.ports.signer import Signer
from cloudstorage.services.tokens.dto import TokenPair, VerifiedToken

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """
    Stateless token issuer/verifier.

    :param access_signer: Signer holding the access secret.
    :param refresh_signer: Signer holding the refresh secret.
    :param access_ttl: Access-token lifetime in seconds.
    :param refresh_ttl: Refresh-token lifetime in seconds.
    """

    def __init__(
        self,
        *,
        access_signer: Signer,
        refresh_signer: Signer,
        access_ttl: int = 900,
        refresh_ttl: int = 7 * 24 * 3600,
    ) -> None:
        self._access = access_signer
        self._refresh = refresh_signer
        self.access_ttl = int(access_ttl)
        self.refresh_ttl = int(refresh_ttl)

    # ------------------------------- Issue ----------------------------------

    def issue_access_token(self, user_id: int) -> str:
        return self._access.sign({"sub": str(user_id), "type": ACCESS}, self.access_ttl)

    def issue_refresh_token(self, user_id: int) -> str:
        return self._refresh.sign({"sub": str(user_id), "type": REFRESH}, self.refresh_ttl)

    def issue_token_pair(self, user_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user_id),
            refresh_token=self.issue_refresh_token(user_id),
            expires_in=self.access_ttl,
        )

    # ------------------------------- Verify ---------------------------------

    def verify_access_token(self, token: str) -> VerifiedToken:
        """
        Verify an access token.

        :raises TokenExpired: Past its TTL.
        :raises InvalidToken: Bad signature, issuer, audience, type or subject.
        """
        return self._verify(self._access, token, ACCESS)

    def verify_refresh_token(self, token: str) -> VerifiedToken:
        return self._verify(self._refresh, token, REFRESH)

    @staticmethod
    def _verify(signer: Signer, token: str, expected_type: str) -> VerifiedToken:
        if not token:
            raise InvalidToken()
        claims: dict[str, Any] = signer.verify(token)
        if claims.get("type") != expected_type:
            raise InvalidToken()
        try:
            user_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc
        return VerifiedToken(user_id=user_id, token_type=expected_type)
