"""
api/limiter.py -- Per-app slowapi rate limiter.

create_app() builds one Limiter from its Settings and hands it to both the
SlowAPIMiddleware (via app.state.limiter) and the auth router factory, which
applies the login limit with limiter.limit(). Each app owns its counters,
so two apps in one process never share limits or an enabled flag.

The login limit string is taken from the Settings object, never re-read from
the environment at request time.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        storage_uri="memory://",
        enabled=settings.rate_limit_enabled,
    )
