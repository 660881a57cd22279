"""
auth/tokens.py -- Session token issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the principal identifier (sub), its public id (uid), issued-at and
       expiry. exp is always iat + TTL.

  Stateless: there is no server-side session table. A valid, unexpired
       token is the only proof of a prior login, so a token cannot be
       revoked before it expires. Shortening the TTL is the only lever.

  Expiry: checked here against an injectable clock rather than by jose, so
       the boundary is exact (valid while now < exp, no leeway) and tests can
       pin time without patching the jose internals.

  SECRET_KEY: passed in by the caller. api/main.py builds the issuer from
       validated Settings at boot; an empty secret raises ConfigurationError
       at construction, never at first login.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from jose import JWTError, jwt

from core.config import DEFAULT_TOKEN_TTL_SECONDS
from core.errors import ConfigurationError, UnauthorizedError

logger = logging.getLogger("smartticket.auth")

ALGORITHM = "HS256"


class TokenIssuer:
    """Signs and verifies session tokens with a symmetric secret.

    Usage:
        issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
        token = issuer.issue("a@x.com", public_id="1")
        issuer.verify(token)   # -> "a@x.com"
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("SECRET_KEY is not configured; cannot sign session tokens.")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, principal_id: str, public_id: str | None = None) -> str:
        """Encode a signed token bound to principal_id, valid for ttl_seconds."""
        issued_at = int(self._clock())
        payload = {
            "sub": principal_id,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        if public_id:
            payload["uid"] = public_id
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict:
        """Verify signature and expiry; return the full claim set.

        Raises UnauthorizedError for a bad signature, a malformed token,
        missing claims, or an expired token.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise UnauthorizedError("Invalid session token.") from exc

        subject = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject or not isinstance(expires_at, int):
            raise UnauthorizedError("Invalid session token.")
        if self._clock() >= expires_at:
            raise UnauthorizedError("Session token has expired.")
        return payload

    def verify(self, token: str) -> str:
        """Return the principal identifier the token was issued for."""
        return self.decode(token)["sub"]
