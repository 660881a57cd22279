"""
api/routes/auth.py -- Signup, login, and principal management endpoints.

Routes (mounted under /api):
  POST /api/auth/signup       -- create a principal; 201 {message, userId}
  POST /api/auth/login        -- password login; 200 {success, token, user}
  POST /api/auth/logout       -- acknowledgement only; tokens are stateless
  GET  /api/auth/profile      -- current principal (requires auth)
  GET  /api/auth/users        -- list principals (admin only)
  POST /api/auth/update-user  -- change role/skills (admin or moderator)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute)
  by the Limiter create_app() passes to build_router().
  Cache-Control: no-store on login responses so tokens are not cached.
  Password hashes never appear in any response model.

Errors are raised as core.errors.AppError subclasses; api/main.py renders
them into the {success: false, code, message} envelope.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter

from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    SignupResponse,
    UpdateUserRequest,
    UserResponse,
    UserSummary,
)
from auth.dependencies import get_auth_service, get_current_principal, require_role
from auth.models import Principal, Role
from auth.service import AuthService

# Auth policy:
# - POST /api/auth/signup:       public
# - POST /api/auth/login:        public, rate-limited
# - POST /api/auth/logout:       public -- nothing to revoke server-side
# - GET  /api/auth/profile:      requires auth (get_current_principal)
# - GET  /api/auth/users:        requires admin
# - POST /api/auth/update-user:  requires admin or moderator; only admins change roles
#
# Everything except login lives on the module-level router. Login needs the
# app's own Limiter, so build_router() adds it per app.
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=SignupResponse, status_code=201)
def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Register a new principal. Returns its id; log in separately for a token."""
    user_id = service.signup(body.email, body.password, body.name)
    return JSONResponse(
        status_code=201,
        content=SignupResponse(user_id=user_id).model_dump(by_alias=True),
    )


def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password; return a session token.

    404 for an unknown email, 401 for a wrong password.
    """
    result = service.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(token=result["token"], user=UserSummary(**result["user"])).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Acknowledge a logout. The token stays valid until it expires."""
    return MessageResponse(message="Logged out.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=UserResponse)
def profile(principal: Principal = Depends(get_current_principal)) -> UserResponse:
    """Return the principal the bearer token was issued for."""
    return UserResponse.from_principal(principal)


@router.get("/users", response_model=list[UserResponse])
def list_users(
    _admin: Principal = Depends(require_role(Role.admin)),
    service: AuthService = Depends(get_auth_service),
) -> list[UserResponse]:
    """List all principals. Admin only."""
    return [UserResponse.from_principal(p) for p in service.list_principals()]


@router.post("/update-user", response_model=UserResponse)
def update_user(
    body: UpdateUserRequest,
    staff: Principal = Depends(require_role(Role.admin, Role.moderator)),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Update a principal's skills, or role when the caller is an admin."""
    updated = service.update_principal(body.user_id, role=body.role, skills=body.skills, actor=staff)
    return UserResponse.from_principal(updated)


# ---------------------------------------------------------------------------
# Per-app assembly
# ---------------------------------------------------------------------------


def build_router(limiter: Limiter, login_rate_limit: str) -> APIRouter:
    """Return the /auth router with login rate-limited by this app's limiter."""
    auth_router = APIRouter(prefix="/auth")
    # limiter.limit must wrap the endpoint before it is registered.
    auth_router.add_api_route(
        "/login",
        limiter.limit(login_rate_limit)(login),
        methods=["POST"],
        response_model=LoginResponse,
    )
    auth_router.include_router(router)
    return auth_router
