"""
tests/test_client_api.py -- Tests for client/api.py.

Two layers:
  - Unit: ApiClient with a MagicMock transport. Asserts on the exact headers
    sent and on what happens to the stored token for each response status.
  - End to end: ApiClient driving the real app through TestClient, which
    exposes the same request(method, url, headers=, json=, timeout=) call
    that requests.Session does.

Covers:
  - Authorization header sent only while a token is stored
  - Content-Type defaults to JSON and can be overridden by the caller
  - Non-2xx -> ApiRequestError carrying the server message, or the
    "Request failed with status N" fallback when the body has none
  - 401 clears the token and navigates to login exactly once
  - Other failures keep the token
  - login() stores the token; signup() stores one only if returned
  - Transport failures become ApiRequestError with no status
  - Missing base URL -> ConfigurationError
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient

from client.api import ApiClient, ApiRequestError
from client.session import SessionState
from core.errors import ConfigurationError

BASE_URL = "http://api.test"


def _response(status: int, body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if body is None:
        resp.json.side_effect = ValueError("no JSON body")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def http() -> MagicMock:
    transport = MagicMock()
    transport.request.return_value = _response(200, {"ok": True})
    return transport


@pytest.fixture
def navigate() -> MagicMock:
    return MagicMock()


def _client(http: MagicMock, navigate: MagicMock, token: str | None = None) -> ApiClient:
    return ApiClient(BASE_URL, SessionState(token), http=http, navigate_to_login=navigate)


def _sent_headers(http: MagicMock) -> dict[str, str]:
    return http.request.call_args.kwargs["headers"]


# ---------------------------------------------------------------------------
# Outgoing requests
# ---------------------------------------------------------------------------


class TestOutgoingHeaders:
    def test_bearer_header_when_token_stored(self, http: MagicMock, navigate: MagicMock) -> None:
        _client(http, navigate, token="tok123").request("/api/auth/profile")
        headers = _sent_headers(http)
        assert headers["Authorization"] == "Bearer tok123"
        assert headers["Content-Type"] == "application/json"

    def test_no_authorization_without_token(self, http: MagicMock, navigate: MagicMock) -> None:
        _client(http, navigate).request("/api/health")
        assert "Authorization" not in _sent_headers(http)

    def test_content_type_override(self, http: MagicMock, navigate: MagicMock) -> None:
        _client(http, navigate).request("/upload", "POST", headers={"Content-Type": "text/plain"})
        assert _sent_headers(http)["Content-Type"] == "text/plain"

    def test_url_method_and_body(self, http: MagicMock, navigate: MagicMock) -> None:
        client = ApiClient(BASE_URL + "/", SessionState(), http=http, navigate_to_login=navigate, timeout=3)
        client.request("/api/auth/login", "POST", json={"email": "a@x.com"})
        args, kwargs = http.request.call_args
        assert args == ("POST", "http://api.test/api/auth/login")
        assert kwargs["json"] == {"email": "a@x.com"}
        assert kwargs["timeout"] == 3


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


class TestFailures:
    def test_401_clears_token_and_navigates_once(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(401, {"success": False, "message": "Invalid session token."})
        client = _client(http, navigate, token="stale")

        with pytest.raises(ApiRequestError) as exc_info:
            client.request("/api/auth/profile")

        assert exc_info.value.status_code == 401
        assert exc_info.value.is_unauthorized
        assert exc_info.value.message == "Invalid session token."
        assert client.session.get_token() is None
        navigate.assert_called_once_with()

    def test_request_after_401_is_anonymous(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(401, {"message": "expired"})
        client = _client(http, navigate, token="stale")
        with pytest.raises(ApiRequestError):
            client.request("/api/auth/profile")

        http.request.return_value = _response(200, {})
        client.request("/api/health")
        assert "Authorization" not in _sent_headers(http)

    @pytest.mark.parametrize("status", [400, 403, 404, 409, 500])
    def test_other_failures_keep_token(self, http: MagicMock, navigate: MagicMock, status: int) -> None:
        http.request.return_value = _response(status, {"message": "nope"})
        client = _client(http, navigate, token="keep-me")

        with pytest.raises(ApiRequestError) as exc_info:
            client.request("/api/auth/users")

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"
        assert client.session.get_token() == "keep-me"
        navigate.assert_not_called()

    def test_fallback_message_without_body(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(502)
        with pytest.raises(ApiRequestError, match="Request failed with status 502"):
            _client(http, navigate).request("/api/health")

    def test_fallback_message_when_body_has_no_message(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(500, {"detail": "x"})
        with pytest.raises(ApiRequestError, match="Request failed with status 500"):
            _client(http, navigate).request("/api/health")

    def test_transport_error(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.side_effect = requests.ConnectionError("connection refused")
        client = _client(http, navigate, token="tok")

        with pytest.raises(ApiRequestError) as exc_info:
            client.request("/api/health")

        assert exc_info.value.status_code is None
        assert client.session.get_token() == "tok"
        navigate.assert_not_called()


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


class TestAuthHelpers:
    def test_login_stores_token(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(200, {"success": True, "token": "fresh", "user": {}})
        client = _client(http, navigate)
        client.login("a@x.com", "p1")
        assert client.session.get_token() == "fresh"

    def test_failed_login_stores_nothing(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(404, {"message": "User not found."})
        client = _client(http, navigate)
        with pytest.raises(ApiRequestError, match="User not found."):
            client.login("nobody@x.com", "p1")
        assert client.session.get_token() is None

    def test_signup_without_token_stores_nothing(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(201, {"message": "User created", "userId": "1"})
        client = _client(http, navigate)
        assert client.signup("a@x.com", "p1")["userId"] == "1"
        assert client.session.get_token() is None

    def test_signup_with_token_stores_it(self, http: MagicMock, navigate: MagicMock) -> None:
        http.request.return_value = _response(201, {"message": "User created", "userId": "1", "token": "t"})
        client = _client(http, navigate)
        client.signup("a@x.com", "p1")
        assert client.session.get_token() == "t"

    def test_logout_clears_token(self, http: MagicMock, navigate: MagicMock) -> None:
        client = _client(http, navigate, token="tok")
        client.logout()
        assert not client.session.is_authenticated
        http.request.assert_not_called()

    def test_update_user_body(self, http: MagicMock, navigate: MagicMock) -> None:
        _client(http, navigate, token="tok").update_user("7", skills=["vpn"])
        args, kwargs = http.request.call_args
        assert args == ("POST", "http://api.test/api/auth/update-user")
        assert kwargs["json"] == {"userId": "7", "skills": ["vpn"]}


def test_missing_base_url_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        ApiClient("", SessionState())


def test_default_transport_is_requests_session() -> None:
    client = ApiClient(BASE_URL, SessionState())
    assert isinstance(client._http, requests.Session)
    assert client._http.max_redirects == 3


# ---------------------------------------------------------------------------
# End to end against the real app
# ---------------------------------------------------------------------------


class TestAgainstApp:
    def test_signup_login_profile(self, client: TestClient, navigate: MagicMock) -> None:
        api = ApiClient("http://testserver", SessionState(), http=client, navigate_to_login=navigate)

        created = api.signup("a@x.com", "p1", "Ada")
        assert created["message"] == "User created"
        assert not api.session.is_authenticated

        with pytest.raises(ApiRequestError) as exc_info:
            api.signup("a@x.com", "p2")
        assert exc_info.value.status_code == 409

        api.login("a@x.com", "p1")
        assert api.session.is_authenticated
        assert api.get_profile()["identifier"] == "a@x.com"
        navigate.assert_not_called()

    def test_server_rejection_ends_session(self, client: TestClient, navigate: MagicMock) -> None:
        api = ApiClient("http://testserver", SessionState(), http=client, navigate_to_login=navigate)
        api.signup("a@x.com", "p1")
        api.login("a@x.com", "p1")

        header, payload, signature = api.session.get_token().split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        api.session.set_token(f"{header}.{payload}.{flipped}")
        with pytest.raises(ApiRequestError) as exc_info:
            api.get_profile()

        assert exc_info.value.is_unauthorized
        assert api.session.get_token() is None
        navigate.assert_called_once_with()

    def test_wrong_password_on_login_clears_nothing_extra(self, client: TestClient, navigate: MagicMock) -> None:
        api = ApiClient("http://testserver", SessionState(), http=client, navigate_to_login=navigate)
        api.signup("a@x.com", "p1")
        with pytest.raises(ApiRequestError, match="Invalid credentials."):
            api.login("a@x.com", "wrong")
        # A 401 from login still goes through the session-expired path.
        navigate.assert_called_once_with()
        assert api.session.get_token() is None
