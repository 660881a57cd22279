"""
client/api.py -- HTTP client for the SmartTicket API.

ApiClient wraps every call with the stored session token:

  - Content-Type: application/json unless the caller overrides it.
  - Authorization: Bearer <token> only while a token is stored.
  - Any non-2xx response raises exactly one ApiRequestError. Its message is
    the server's "message" field when the body parses, otherwise
    "Request failed with status N".
  - A 401 clears the stored token and calls navigate_to_login() before the
    error is raised. Callers should not try to recover from it; the session
    is gone.

login() stores the returned token. signup() stores one only if the server
sends one back -- the signup endpoint answers {message, userId} with no
token, so after signup the caller still has to log in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

import requests

from client.session import SessionState
from core.errors import ConfigurationError

logger = logging.getLogger("smartticket.client")

_DEFAULT_TIMEOUT = 10


class ApiRequestError(Exception):
    """A failed API call. status_code is None when no response arrived."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


def redirect_to_login() -> None:
    """Default login navigation for terminal clients: tell the user to log in again."""
    logger.warning("Session expired or invalid. Log in again to continue.")


class ApiClient:
    """Token-carrying client for the SmartTicket API.

    Usage:
        client = ApiClient("http://localhost:8000", SessionState())
        client.login("a@x.com", "p1")
        client.get_profile()
    """

    def __init__(
        self,
        base_url: str,
        session: SessionState,
        http: Any = None,
        navigate_to_login: Callable[[], None] = redirect_to_login,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        if not base_url:
            raise ConfigurationError("API_BASE_URL is not configured. Set it in the environment or .env file.")
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.navigate_to_login = navigate_to_login
        self.timeout = timeout
        if http is None:
            http = requests.Session()
            # Known endpoint; a long redirect chain is a misconfiguration, not a feature.
            http.max_redirects = 3
        self._http = http

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, extra: Optional[dict[str, str]]) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **(extra or {})}
        token = self.session.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ):
        """Send one request and return the response, or raise ApiRequestError."""
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(
                method,
                url,
                headers=self._headers(headers),
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiRequestError(f"Request failed: {exc}") from exc

        status = resp.status_code
        if 200 <= status < 300:
            return resp

        message = f"Request failed with status {status}"
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            message = str(body["message"])

        if status == 401:
            self.session.clear()
            self.navigate_to_login()

        raise ApiRequestError(message, status_code=status)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> dict:
        data = self.request("/api/auth/login", "POST", json={"email": email, "password": password}).json()
        self.session.set_token(data["token"])
        return data

    def signup(self, email: str, password: str, name: Optional[str] = None) -> dict:
        body: dict[str, Any] = {"email": email, "password": password}
        if name:
            body["name"] = name
        data = self.request("/api/auth/signup", "POST", json=body).json()
        token = data.get("token")
        if token:
            self.session.set_token(token)
        return data

    def logout(self) -> None:
        """Drop the local token. There is nothing to revoke server-side."""
        self.session.clear()

    # ------------------------------------------------------------------
    # Principals
    # ------------------------------------------------------------------

    def get_profile(self) -> dict:
        return self.request("/api/auth/profile").json()

    def list_users(self) -> list[dict]:
        return self.request("/api/auth/users").json()

    def update_user(self, user_id: str, role: Optional[str] = None, skills: Optional[list[str]] = None) -> dict:
        body: dict[str, Any] = {"userId": user_id}
        if role is not None:
            body["role"] = role
        if skills is not None:
            body["skills"] = skills
        return self.request("/api/auth/update-user", "POST", json=body).json()
