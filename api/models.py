"""
API request and response models for SmartTicket auth endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields that the service treats as required (email, password) are
Optional here on purpose: a missing field must come back as the service's
400 "Email and password are required.", not as a schema error.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from auth.models import Principal, Role, normalize_skills
from auth.passwords import MAX_PASSWORD_BYTES, password_too_long


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    The login name arrives as "email" (web client) or "identifier".
    No whitespace stripping here: passwords are compared byte for byte. The
    service trims the email itself.
    """

    email: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("email", "identifier"),
    )
    password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: Optional[str]) -> Optional[str]:
        """bcrypt's limit is in bytes, so a short non-ASCII password can exceed it."""
        if value is not None and password_too_long(value):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
        return value


class SignupRequest(LoginRequest):
    """Request body for POST /api/auth/signup."""

    name: Optional[str] = Field(default=None, max_length=255)


class UpdateUserRequest(BaseModel):
    """Request body for POST /api/auth/update-user."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    role: Optional[Role] = None
    skills: Optional[list[str]] = Field(default=None, max_length=50)

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, value):
        """Accept numeric ids from JSON clients as well as strings."""
        return str(value) if isinstance(value, int) else value

    @field_validator("skills")
    @classmethod
    def dedupe_skills(cls, values: Optional[list[str]]) -> Optional[list[str]]:
        return None if values is None else normalize_skills(values)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Principal summary returned by login. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    identifier: str
    name: Optional[str] = None


class UserResponse(UserSummary):
    """Full outward-facing principal view for profile and admin routes."""

    role: Optional[Role] = None
    skills: list[str] = Field(default_factory=list)
    created_at: str = ""

    @classmethod
    def from_principal(cls, principal: Principal) -> "UserResponse":
        return cls(
            id=principal.public_id,
            identifier=principal.identifier,
            name=principal.name,
            role=principal.role,
            skills=list(principal.skills),
            created_at=principal.created_at or "",
        )


class SignupResponse(BaseModel):
    """Response for POST /api/auth/signup. Carries no token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str = "User created"
    user_id: str = Field(serialization_alias="userId")


class LoginResponse(BaseModel):
    """Response for POST /api/auth/login."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    token: str
    user: UserSummary


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    code: str
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
