"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers:
  - issue -> verify returns the identifier the token was issued for
  - exp is exactly iat + TTL, uid carries the public id
  - TTL boundary: valid one second before expiry, rejected at and after it
  - Tampered signature, wrong secret, garbage input are all UnauthorizedError
  - A token with no subject is rejected
  - An empty secret is a ConfigurationError at construction

Time is pinned with the FakeClock fixture from conftest.py; nothing sleeps.
"""

from __future__ import annotations

import pytest
from jose import jwt

from auth.tokens import ALGORITHM, TokenIssuer
from core.errors import ConfigurationError, UnauthorizedError

TTL = 86400


def _tamper_signature(token: str) -> str:
    """Change the first character of the signature segment.

    The last base64url character may only carry padding bits, so flipping it
    can leave the decoded signature unchanged. The first one never does.
    """
    header, payload, signature = token.split(".")
    replacement = "A" if signature[0] != "A" else "B"
    return ".".join([header, payload, replacement + signature[1:]])


def test_issue_then_verify_returns_identifier(issuer: TokenIssuer) -> None:
    token = issuer.issue("a@x.com", public_id="1")
    assert issuer.verify(token) == "a@x.com"


def test_claims_carry_expiry_and_public_id(issuer: TokenIssuer, clock) -> None:
    claims = issuer.decode(issuer.issue("a@x.com", public_id="42"))
    assert claims["sub"] == "a@x.com"
    assert claims["uid"] == "42"
    assert claims["iat"] == int(clock.now)
    assert claims["exp"] == claims["iat"] + TTL


def test_public_id_is_optional(issuer: TokenIssuer) -> None:
    claims = issuer.decode(issuer.issue("a@x.com"))
    assert "uid" not in claims


class TestExpiry:
    def test_valid_just_before_expiry(self, issuer: TokenIssuer, clock) -> None:
        token = issuer.issue("a@x.com")
        clock.advance(TTL - 1)
        assert issuer.verify(token) == "a@x.com"

    def test_rejected_at_expiry(self, issuer: TokenIssuer, clock) -> None:
        token = issuer.issue("a@x.com")
        clock.advance(TTL)
        with pytest.raises(UnauthorizedError):
            issuer.verify(token)

    def test_rejected_after_expiry(self, issuer: TokenIssuer, clock) -> None:
        token = issuer.issue("a@x.com")
        clock.advance(TTL + 1)
        with pytest.raises(UnauthorizedError, match="expired"):
            issuer.verify(token)

    def test_custom_ttl(self, clock, secret: str) -> None:
        short = TokenIssuer(secret, ttl_seconds=60, clock=clock)
        token = short.issue("a@x.com")
        clock.advance(59)
        assert short.verify(token) == "a@x.com"
        clock.advance(1)
        with pytest.raises(UnauthorizedError):
            short.verify(token)


class TestRejection:
    def test_tampered_signature(self, issuer: TokenIssuer) -> None:
        token = issuer.issue("a@x.com")
        with pytest.raises(UnauthorizedError):
            issuer.verify(_tamper_signature(token))

    def test_tampered_payload(self, issuer: TokenIssuer, clock) -> None:
        token = issuer.issue("a@x.com")
        forged = jwt.encode(
            {"sub": "admin@x.com", "exp": int(clock.now) + TTL},
            "some-other-secret-of-enough-length!!",
            algorithm=ALGORITHM,
        )
        header, _, signature = token.split(".")
        spliced = ".".join([header, forged.split(".")[1], signature])
        with pytest.raises(UnauthorizedError):
            issuer.verify(spliced)

    def test_wrong_secret(self, issuer: TokenIssuer, clock) -> None:
        other = TokenIssuer("a-completely-different-secret-0123456789", clock=clock)
        with pytest.raises(UnauthorizedError):
            issuer.verify(other.issue("a@x.com"))

    @pytest.mark.parametrize("garbage", ["", "garbage", "a.b.c", "Bearer x.y.z"])
    def test_malformed_token(self, issuer: TokenIssuer, garbage: str) -> None:
        with pytest.raises(UnauthorizedError):
            issuer.verify(garbage)

    def test_missing_subject(self, issuer: TokenIssuer, clock, secret: str) -> None:
        token = jwt.encode({"exp": int(clock.now) + TTL}, secret, algorithm=ALGORITHM)
        with pytest.raises(UnauthorizedError):
            issuer.verify(token)

    def test_missing_expiry(self, issuer: TokenIssuer, secret: str) -> None:
        token = jwt.encode({"sub": "a@x.com"}, secret, algorithm=ALGORITHM)
        with pytest.raises(UnauthorizedError):
            issuer.verify(token)


def test_empty_secret_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        TokenIssuer("")
