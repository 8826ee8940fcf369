"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and api/routes/users.py
(to apply per-route limits with @limiter.limit()).

A single shared instance means all routes share one in-memory counter store.
If each module built its own, each would get an isolated counter and limits
would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

_login_limit = "10/minute"


def configure_limits(enabled: bool, login_limit: str) -> None:
    """Apply Settings to the shared limiter. Called once by create_app()."""
    global _login_limit
    limiter.enabled = enabled
    _login_limit = login_limit


def login_rate_limit() -> str:
    """Current POST /login limit; slowapi re-reads it on every request."""
    return _login_limit
