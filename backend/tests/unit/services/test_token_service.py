"""Tests for TokenService and the PyJWT signer."""

from __future__ import annotations

import json

import jwt
import pytest
from freezegun import freeze_time
from jwt.utils import base64url_decode, base64url_encode

from cloudstorage.infra.jwt.pyjwt_signer import PyJWTSigner
from cloudstorage.services._shared.errors import InvalidToken, TokenExpired
from cloudstorage.services.tokens import TokenService

ISSUER = "cloudstorage-api"
AUDIENCE = "cloudstorage-app"


def _signer(name: str, secret: str, **kwargs) -> PyJWTSigner:
    return PyJWTSigner(name=name, secret=secret, issuer=ISSUER, audience=AUDIENCE, **kwargs)


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(
        access_signer=_signer("access", "access-secret"),
        refresh_signer=_signer("refresh", "refresh-secret"),
        access_ttl=900,
        refresh_ttl=7 * 24 * 3600,
    )


def test_pair_round_trip(tokens):
    pair = tokens.issue_token_pair(42)
    assert pair.expires_in == 900
    assert pair.to_dict()["token_type"] == "Bearer"
    assert tokens.verify_access_token(pair.access_token).user_id == 42
    assert tokens.verify_refresh_token(pair.refresh_token).user_id == 42


def test_tokens_are_unique_per_issue(tokens):
    assert tokens.issue_refresh_token(1) != tokens.issue_refresh_token(1)


def test_secrets_are_not_interchangeable(tokens):
    pair = tokens.issue_token_pair(7)
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(pair.refresh_token)
    with pytest.raises(InvalidToken):
        tokens.verify_refresh_token(pair.access_token)


def test_type_claim_is_enforced():
    """Same secret on both tiers still rejects a token of the wrong type."""
    shared = _signer("shared", "one-secret")
    svc = TokenService(access_signer=shared, refresh_signer=shared)
    with pytest.raises(InvalidToken):
        svc.verify_access_token(svc.issue_refresh_token(3))


def test_access_token_expires(tokens):
    with freeze_time("2030-01-01 12:00:00"):
        token = tokens.issue_access_token(5)
    with freeze_time("2030-01-01 12:14:59"):
        assert tokens.verify_access_token(token).user_id == 5
    with freeze_time("2030-01-01 12:15:01"), pytest.raises(TokenExpired) as exc:
        tokens.verify_access_token(token)
    assert exc.value.code == "token_expired"


def test_refresh_token_outlives_access_token(tokens):
    with freeze_time("2030-01-01 12:00:00"):
        pair = tokens.issue_token_pair(5)
    with freeze_time("2030-01-03 12:00:00"):
        with pytest.raises(TokenExpired):
            tokens.verify_access_token(pair.access_token)
        assert tokens.verify_refresh_token(pair.refresh_token).user_id == 5


def test_tampered_token_is_invalid(tokens):
    token = tokens.issue_access_token(9)
    head, payload, sig = token.split(".")
    claims = json.loads(base64url_decode(payload))
    claims["sub"] = "1"
    forged_payload = base64url_encode(json.dumps(claims).encode()).decode()
    with pytest.raises(InvalidToken) as exc:
        tokens.verify_access_token(".".join([head, forged_payload, sig]))
    assert exc.value.code == "invalid_token"


def test_foreign_secret_is_invalid(tokens):
    other = _signer("access", "not-the-access-secret")
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(other.sign({"sub": "9", "type": "access"}, 60))


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_garbage_is_invalid(tokens, garbage):
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(garbage)


def test_wrong_audience_or_issuer_is_invalid(tokens):
    foreign = PyJWTSigner(name="x", secret="access-secret", issuer="someone-else", audience=AUDIENCE)
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(foreign.sign({"sub": "1", "type": "access"}, 60))


def test_non_numeric_subject_is_invalid(tokens):
    signer = _signer("access", "access-secret")
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(signer.sign({"sub": "abc", "type": "access"}, 60))


def test_missing_claims_are_invalid(tokens):
    bare = jwt.encode({"sub": "1", "type": "access"}, "access-secret", algorithm="HS256")
    with pytest.raises(InvalidToken):
        tokens.verify_access_token(bare)


def test_signer_requires_secret():
    with pytest.raises(ValueError):
        _signer("access", "")
