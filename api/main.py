"""
api/main.py -- FastAPI application factory for SmartTicket.

Run with:  python main.py serve
           uvicorn asgi:app --reload

Boot sequence (create_app):
  1. Settings are validated. A missing or short SECRET_KEY raises
     ConfigurationError here, before any route exists -- the process never
     starts serving with an unusable signing secret.
  2. The credential store and token issuer are built from those settings
     and attached to app.state for the auth dependencies.
  3. Middleware, routers, and exception handlers are registered.

Middleware stack (outermost to innermost; Starlette wraps the last one
registered around everything registered before it):
  1. log_requests       -- one access-log line per request
  2. CORSMiddleware     -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware  -- enforces per-route rate limits from this app's Limiter

Every error leaves the API in the same envelope:
    {"success": false, "code": "...", "message": "..."}
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import build_limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import build_router
from auth.store import PrincipalStore
from auth.tokens import TokenIssuer
from core.config import Settings, get_settings
from core.errors import AppError
from core.logging_safety import configure_logging

API_VERSION = "0.1.0"

logger = logging.getLogger("smartticket.api")


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message).model_dump(),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Render domain errors with their fixed status and code."""
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
        return _error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Return 429 with Retry-After when a rate limit is exceeded."""
        retry_after = int(getattr(exc, "retry_after", 60))
        response = _error_response(429, "rate_limited", "Too many requests.")
        response.headers["Retry-After"] = str(retry_after)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies are client-correctable input errors: 400, not 422."""
        logger.info("%s %s rejected: %d validation error(s)", request.method, request.url.path, len(exc.errors()))
        return _error_response(400, "validation_error", "Request validation failed.")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected server errors.

        The traceback goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "An unexpected error occurred.")


def create_app(settings: Settings | None = None, store: PrincipalStore | None = None) -> FastAPI:
    """Build the SmartTicket API.

    Args:
        settings: Pre-built settings. When omitted they are read from the
                  environment and validated; ConfigurationError propagates.
        store:    Credential store override (tests pass an isolated one).
                  When omitted one is opened on settings.database_url and
                  closed on shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    owns_store = store is None
    principal_store = store or PrincipalStore(settings.database_url)
    token_issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("SmartTicket API starting up (principals=%d)", principal_store.count())
        yield
        if owns_store:
            principal_store.close()
        logger.info("SmartTicket API shutdown complete")

    app = FastAPI(
        title="SmartTicket API",
        description="Support-ticket backend: signup, login, and session-token authentication.",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.principal_store = principal_store
    app.state.token_issuer = token_issuer

    # -----------------------------------------------------------------------
    # Middleware stack
    # -----------------------------------------------------------------------

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    # SlowAPI looks for app.state.limiter by convention.
    limiter = build_limiter(settings)
    app.state.limiter = limiter

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    app.include_router(build_router(limiter, settings.login_rate_limit), prefix="/api", tags=["Auth"])

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return API liveness, version, and credential store status. No auth."""
        try:
            database = "ok" if request.app.state.principal_store.ping() else "error"
        except Exception:
            logger.exception("Health check: credential store unreachable")
            database = "error"
        return HealthResponse(version=API_VERSION, components={"app": "ok", "database": database})

    _register_exception_handlers(app)
    return app
