"""
api/dependencies.py -- FastAPI Depends() helpers.

create_app() assembles one AuthService per application and stores it on
app.state; these helpers are the only code that reads it back. Route handlers
receive the service and the authenticated user as plain arguments.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.models import Identity, User
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_identity(request: Request, auth: AuthService = Depends(get_auth_service)) -> Identity:
    """Resolve the bearer token without loading the user record.

    Raises Unauthenticated (rendered as 401) on a missing or bad token.
    """
    return auth.resolve_bearer(request.headers.get("Authorization"))


def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> User:
    """Require a bearer token whose subject is an existing user.

    Use as a FastAPI dependency:
        @router.patch("/users/userstats")
        def route(user: User = Depends(get_current_user)): ...
    """
    return auth.current_user(request.headers.get("Authorization"))
