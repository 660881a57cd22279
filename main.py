#!/usr/bin/env python3
"""
SmartTicket -- server bootstrap and account CLI.

Usage:
  python main.py serve [--host 0.0.0.0] [--port 8000] [--reload]
  python main.py check-config
  python main.py signup a@x.com --password p1 [--name "Ada"]
  python main.py login a@x.com --password p1
  python main.py whoami
  python main.py logout

Environment variables:
  SECRET_KEY     Required for serve/check-config. At least 32 characters.
                 The server refuses to start without it.
  API_BASE_URL   Required for the account commands, e.g. http://localhost:8000
  DATABASE_URL   Optional credential store URL (default: SQLite beside auth/).

The account commands keep their session token in ~/.smartticket/session.json.
"""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from client.api import ApiClient, ApiRequestError
from client.session import FileSessionState
from core.config import ClientSettings, Settings, validate_settings
from core.errors import ConfigurationError
from core.logging_safety import configure_logging

logger = logging.getLogger("smartticket.cli")


def _load_settings() -> Settings:
    """Validate configuration or exit the process with status 1."""
    try:
        return validate_settings()
    except ConfigurationError as exc:
        logger.critical("%s", exc.message)
        sys.exit(1)


def _client(session_file: Optional[str]) -> ApiClient:
    settings = ClientSettings()
    session = FileSessionState(Path(session_file) if session_file else None)
    try:
        return ApiClient(settings.api_base_url, session)
    except ConfigurationError as exc:
        logger.critical("%s", exc.message)
        sys.exit(1)


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password else getpass.getpass("Password: ")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace) -> int:
    settings = _load_settings()
    import uvicorn

    logger.info("Starting SmartTicket API on %s:%d", args.host, args.port)
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload, log_level=settings.log_level.lower())
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    settings = _load_settings()
    print(f"Configuration OK (token TTL {settings.token_expire_seconds}s).")
    return 0


def cmd_signup(args: argparse.Namespace) -> int:
    client = _client(args.session_file)
    data = client.signup(args.email, _password(args), args.name)
    print(f"{data.get('message', 'User created')} (id {data.get('userId')}). Run 'login' to start a session.")
    return 0


def cmd_login(args: argparse.Namespace) -> int:
    client = _client(args.session_file)
    data = client.login(args.email, _password(args))
    user = data.get("user", {})
    print(f"Logged in as {user.get('identifier')}.")
    return 0


def cmd_whoami(args: argparse.Namespace) -> int:
    client = _client(args.session_file)
    if not client.session.is_authenticated:
        print("Not logged in.")
        return 1
    print(json.dumps(client.get_profile(), indent=2))
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    client = _client(args.session_file)
    client.logout()
    print("Logged out.")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartticket",
        description="SmartTicket server bootstrap and account commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--session-file",
        metavar="PATH",
        default=None,
        help="Where the account commands keep the session token (default: ~/.smartticket/session.json)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Validate configuration and run the API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check-config", help="Validate configuration and exit")
    check.set_defaults(func=cmd_check_config)

    signup = sub.add_parser("signup", help="Create an account")
    signup.add_argument("email")
    signup.add_argument("--password", help="Prompted for when omitted")
    signup.add_argument("--name")
    signup.set_defaults(func=cmd_signup)

    login = sub.add_parser("login", help="Log in and store the session token")
    login.add_argument("email")
    login.add_argument("--password", help="Prompted for when omitted")
    login.set_defaults(func=cmd_login)

    whoami = sub.add_parser("whoami", help="Show the logged-in account")
    whoami.set_defaults(func=cmd_whoami)

    logout = sub.add_parser("logout", help="Forget the stored session token")
    logout.set_defaults(func=cmd_logout)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ApiRequestError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
