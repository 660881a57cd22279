"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

This is the server-side gate for protected routes. Per request:

  No token     -> UnauthorizedError (401), handler never runs.
  Token        -> TokenIssuer.verify()
  Verified     -> principal identifier stored on request.state.principal_id,
                  handler runs.
  Rejected     -> UnauthorizedError (401), handler never runs.

Only the Authorization: Bearer <token> header is accepted. Nothing is kept
between requests.

get_current_principal_id() is the gate. get_current_principal() loads the
record behind it; require_role() adds a role check (403) on top.

Layer rule: no imports from api/ or client/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Principal, Role
from auth.service import AuthService
from auth.tokens import TokenIssuer
from core.errors import ForbiddenError, UnauthorizedError
from core.logging_safety import safe_log_identifier

logger = logging.getLogger("smartticket.auth")

_BEARER_PREFIX = "bearer "


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_auth_service(request: Request) -> AuthService:
    return AuthService(request.app.state.principal_store, request.app.state.token_issuer)


def get_current_principal_id(request: Request) -> str:
    """Require a valid bearer token and return the principal identifier it carries.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(principal_id: str = Depends(get_current_principal_id)): ...
    """
    token = _bearer_token(request)
    if token is None:
        logger.warning(
            "auth.rejected method=%s path=%s reason=missing_bearer",
            request.method,
            request.url.path,
        )
        raise UnauthorizedError("Authentication required.")

    try:
        principal_id = get_token_issuer(request).verify(token)
    except UnauthorizedError:
        logger.warning(
            "auth.rejected method=%s path=%s reason=token_verification_failed",
            request.method,
            request.url.path,
        )
        raise

    request.state.principal_id = principal_id
    logger.debug(
        "auth.accepted method=%s path=%s principal=%s",
        request.method,
        request.url.path,
        safe_log_identifier(principal_id, prefix="pid"),
    )
    return principal_id


def get_current_principal(
    principal_id: str = Depends(get_current_principal_id),
    service: AuthService = Depends(get_auth_service),
) -> Principal:
    return service.get_profile(principal_id)


def require_role(*roles: Role) -> Callable[..., Principal]:
    """Build a dependency that admits only principals holding one of roles.

    Raises 401 if unauthenticated (via get_current_principal), 403 otherwise.
    """
    allowed = frozenset(roles)

    def _dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenError("You do not have access to this resource.")
        return principal

    return _dependency
