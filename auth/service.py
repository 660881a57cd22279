"""
auth/service.py -- Signup and login orchestration.

AuthService sits between the HTTP routes and the auth primitives:

    route -> AuthService -> PrincipalStore (lookup / create)
                         -> passwords      (hash / verify)
                         -> TokenIssuer    (issue)

Error contract:
  Every failure leaves this layer as a core.errors.AppError subclass with a
  stable status. Anything unexpected (storage errors, bugs) is logged with
  its traceback and re-raised as UnexpectedError; the original exception is
  chained for the log but never rendered to the caller.

Concurrency:
  signup() checks for an existing identifier and then inserts. Two requests
  can interleave between those steps; the store's UNIQUE constraint rejects
  the second insert and the IntegrityError becomes ConflictError here. No
  locking happens in this layer.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import Principal, Role, normalize_skills
from auth.passwords import MAX_PASSWORD_BYTES, hash_password, password_too_long, verify_password
from auth.store import PrincipalStore
from auth.tokens import TokenIssuer
from core.errors import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    UnexpectedError,
    ValidationError,
)
from core.logging_safety import safe_log_identifier

logger = logging.getLogger("smartticket.auth")


def _require_credentials(identifier: str | None, password: str | None) -> tuple[str, str]:
    identifier = (identifier or "").strip()
    if not identifier or not password:
        raise ValidationError("Email and password are required.")
    return identifier, password


class AuthService:
    def __init__(self, store: PrincipalStore, issuer: TokenIssuer) -> None:
        self._store = store
        self._issuer = issuer

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    def signup(self, identifier: str | None, password: str | None, name: str | None = None) -> str:
        """Create a principal and return its public id. Does not issue a token."""
        identifier, password = _require_credentials(identifier, password)
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        try:
            if self._store.get_by_identifier(identifier) is not None:
                raise ConflictError("User already exists.")

            principal = Principal(
                identifier=identifier,
                hashed_password=hash_password(password),
                name=(name or "").strip() or None,
            )
            try:
                principal_id = self._store.create_principal(principal)
            except IntegrityError as exc:
                # Lost the race against a concurrent signup for the same identifier.
                raise ConflictError("User already exists.") from exc
        except AppError:
            raise
        except Exception as exc:
            logger.exception("auth.signup_failed principal=%s", safe_log_identifier(identifier, prefix="pid"))
            raise UnexpectedError("Signup failed.") from exc

        logger.info("auth.signup principal=%s", safe_log_identifier(identifier, prefix="pid"))
        return str(principal_id)

    def login(self, identifier: str | None, password: str | None) -> dict:
        """Verify credentials and issue a session token.

        Returns {"token": ..., "user": {"id", "identifier", "name"}}.
        An unknown identifier is NotFoundError; a known identifier with the
        wrong password is always UnauthorizedError.
        """
        identifier, password = _require_credentials(identifier, password)
        safe_id = safe_log_identifier(identifier, prefix="pid")
        try:
            principal = self._store.get_by_identifier(identifier)
            if principal is None:
                logger.warning("auth.login_rejected principal=%s reason=unknown_identifier", safe_id)
                raise NotFoundError("User not found.")
            if not verify_password(password, principal.hashed_password):
                logger.warning("auth.login_rejected principal=%s reason=bad_password", safe_id)
                raise UnauthorizedError("Invalid credentials.")
            token = self._issuer.issue(principal.identifier, public_id=principal.public_id)
        except AppError:
            raise
        except Exception as exc:
            logger.exception("auth.login_failed principal=%s", safe_id)
            raise UnexpectedError("Login failed.") from exc

        logger.info("auth.login principal=%s", safe_id)
        return {"token": token, "user": principal.summary()}

    # ------------------------------------------------------------------
    # Profile path
    # ------------------------------------------------------------------

    def get_profile(self, identifier: str) -> Principal:
        """Resolve the principal behind a verified token.

        A token can outlive its principal only if the record was removed out
        of band; that is reported as UnauthorizedError so the client logs out.
        """
        principal = self._store.get_by_identifier(identifier)
        if principal is None:
            raise UnauthorizedError("Session no longer matches a user.")
        return principal

    def list_principals(self) -> list[Principal]:
        return self._store.list_principals()

    def update_principal(
        self,
        principal_id: str | int | None,
        role: Role | None = None,
        skills: list[str] | None = None,
        actor: Principal | None = None,
    ) -> Principal:
        """Change role and/or skills of an existing principal.

        actor is the principal making the change. Only admins may change a
        role; moderators may edit skills only. actor=None is a trusted in-process
        call and skips the check.
        """
        try:
            pk = int(principal_id)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValidationError("userId is required.") from exc

        updates: dict = {}
        if role is not None:
            updates["role"] = role
        if skills is not None:
            updates["skills"] = normalize_skills(skills)
        if not updates:
            raise ValidationError("No fields to update.")
        if "role" in updates and actor is not None and actor.role is not Role.admin:
            logger.warning(
                "auth.update_user_denied actor=%s target=%s reason=role_change_requires_admin",
                safe_log_identifier(actor.identifier, prefix="pid"),
                safe_log_identifier(pk, prefix="pid"),
            )
            raise ForbiddenError("Only admins can change roles.")

        if not self._store.update_principal(pk, **updates):
            raise NotFoundError("User not found.")
        updated = self._store.get_by_id(pk)
        if updated is None:
            raise UnexpectedError("Update failed.")
        logger.info("auth.update_user principal=%s fields=%s", safe_log_identifier(pk, prefix="pid"), sorted(updates))
        return updated
