"""Tests for session token issuance and verification."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from accounts.errors import ConfigError, TokenExpiredError, TokenInvalidError, ValidationError
from accounts.tokens import ALGORITHM, TokenService


SECRET = "tests-token-secret-with-enough-bytes!"
ISSUER = "cuddly-waffle-fantastic"


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(SECRET, issuer=ISSUER, default_ttl=timedelta(hours=3))


def test_sign_and_verify_round_trip(tokens: TokenService) -> None:
    user_id = str(uuid.uuid4())
    token = tokens.sign({"id": user_id, "user_name": "talitos"})

    claims = tokens.verify(token)

    assert claims["id"] == user_id
    assert claims["user_name"] == "talitos"
    assert claims["sub"] == user_id
    assert claims["iss"] == ISSUER
    assert str(uuid.UUID(claims["jti"])) == claims["jti"]
    assert claims["exp"] - claims["iat"] == int(timedelta(hours=3).total_seconds())


def test_fixed_claims_override_caller_values(tokens: TokenService) -> None:
    token = tokens.sign({"id": "abc", "iss": "someone-else", "jti": "fixed", "iat": 0})

    claims = tokens.verify(token)

    assert claims["iss"] == ISSUER
    assert claims["jti"] != "fixed"
    assert claims["iat"] > 0


def test_subject_and_lifetime_can_be_overridden(tokens: TokenService) -> None:
    token = tokens.sign({"id": "abc"}, subject="service-account", expires_in=timedelta(minutes=5))

    claims = tokens.verify(token)

    assert claims["sub"] == "service-account"
    assert claims["exp"] - claims["iat"] == 300


def test_each_token_gets_a_unique_id(tokens: TokenService) -> None:
    first = tokens.verify(tokens.sign({"id": "abc"}))
    second = tokens.verify(tokens.sign({"id": "abc"}))

    assert first["jti"] != second["jti"]


def test_subject_is_required(tokens: TokenService) -> None:
    with pytest.raises(ValidationError):
        tokens.sign({"user_name": "nobody"})


def test_expired_token_reports_expiry(tokens: TokenService) -> None:
    before = datetime.now(timezone.utc)
    token = tokens.sign({"id": "abc"}, expires_in=timedelta(seconds=-30))

    with pytest.raises(TokenExpiredError) as excinfo:
        tokens.verify(token)

    expired_at = excinfo.value.expired_at
    assert expired_at < before
    assert expired_at > before - timedelta(minutes=1)
    assert excinfo.value.details["expired_at"] == expired_at.isoformat()


def test_token_from_another_secret_is_invalid(tokens: TokenService) -> None:
    other = TokenService("a-completely-different-secret-value!", issuer=ISSUER, default_ttl=timedelta(hours=1))
    token = other.sign({"id": "abc"})

    with pytest.raises(TokenInvalidError):
        tokens.verify(token)


def test_tampered_token_is_invalid(tokens: TokenService) -> None:
    token = tokens.sign({"id": "abc"})
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(TokenInvalidError):
        tokens.verify(tampered)


def test_token_from_another_issuer_is_invalid(tokens: TokenService) -> None:
    foreign = TokenService(SECRET, issuer="another-service", default_ttl=timedelta(hours=1))

    with pytest.raises(TokenInvalidError):
        tokens.verify(foreign.sign({"id": "abc"}))


def test_token_missing_required_claims_is_invalid(tokens: TokenService) -> None:
    token = jwt.encode({"id": "abc", "iss": ISSUER}, SECRET, algorithm=ALGORITHM)

    with pytest.raises(TokenInvalidError):
        tokens.verify(token)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
def test_malformed_token_is_invalid(tokens: TokenService, garbage: str) -> None:
    with pytest.raises(TokenInvalidError):
        tokens.verify(garbage)


def test_expired_and_invalid_are_distinct() -> None:
    assert not issubclass(TokenExpiredError, TokenInvalidError)
    assert not issubclass(TokenInvalidError, TokenExpiredError)


def test_missing_secret_is_a_configuration_error() -> None:
    with pytest.raises(ConfigError):
        TokenService("", issuer=ISSUER, default_ttl=timedelta(hours=1))
