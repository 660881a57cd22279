"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SmartTicket happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. A missing or short SECRET_KEY fails here.

Boot-time validation:
  Token signing needs SECRET_KEY. Its absence is a startup failure, not a
  per-request one: validate_settings() converts pydantic's ValidationError
  into ConfigurationError, and every entry point (create_app(), the CLI)
  calls it before serving anything.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or client/.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from limits import parse_many
from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError

logger = logging.getLogger("smartticket.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'smartticket_auth.db'}"

# Session tokens live for one day.
DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a usable default. Tests construct
    Settings(secret_key=...) directly instead of touching the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the "not configured" sentinel; the validator rejects it.
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build settings without a usable signing secret or login limit."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. Set SECRET_KEY in your environment or .env file. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        if len(self.secret_key) < _MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        # slowapi logs and skips a limit it cannot parse; fail at boot instead.
        try:
            parse_many(self.login_rate_limit)
        except ValueError as exc:
            raise ValueError(f"LOGIN_RATE_LIMIT is not a valid rate limit: {self.login_rate_limit!r}") from exc
        return self


class ClientSettings(BaseSettings):
    """Settings for the API client. Never needs the server's SECRET_KEY."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: str = ""
    log_level: str = "INFO"


def validate_settings(**overrides) -> Settings:
    """Build Settings and surface any failure as ConfigurationError.

    Entry points call this at boot so a missing secret stops the process
    before the first request rather than at the first login.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise ConfigurationError(f"Invalid configuration: {messages}") from exc


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return validate_settings()
