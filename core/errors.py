"""
core/errors.py -- Application error taxonomy.

Every failure the auth layer can report to a caller is one of these types.
Each carries a stable HTTP status and a machine-readable code; api/main.py
renders them into the shared error envelope:

    {"success": false, "code": "<code>", "message": "<message>"}

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or client/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map to a fixed externally-visible status."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input. Correctable by the client."""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid request."


class UnauthorizedError(AppError):
    """Bad password, or a missing, invalid, or expired session token."""

    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have access to this resource."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class ConflictError(AppError):
    """Duplicate identifier on signup."""

    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class ConfigurationError(AppError):
    """Required configuration is absent or invalid.

    Raised at boot by core.config.validate_settings(). Entry points treat it
    as fatal and exit; it should never surface from a request handler.
    """

    code = "configuration_error"
    default_message = "Server is misconfigured."


class UnexpectedError(AppError):
    """Anything else. The original exception is chained, never exposed."""

    code = "internal_error"
