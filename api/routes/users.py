"""
api/routes/users.py -- User registration, login and profile-stat endpoints.

Routes:
  POST  /api/users/login          -- password login; returns a bearer token
  POST  /api/users/registration   -- create an account
  PATCH /api/users/userstats      -- update age/height/userweight (requires auth)
  GET   /api/users/{user_id}      -- public profile (requires auth)

Error envelopes:
  Login failures use the flat shape {"error": "..."}; every other 4xx uses
  {"error": {"message": "..."}}. Login builds its failure responses here;
  the rest are raised as FitTrackError and rendered by api/main.py.

Security:
  [H1] POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [T1] AuthService.login() equalizes timing for unknown users -- use it,
       never inline find_user_by_username() + verify_password().
  [H2] Cache-Control: no-store on login responses.

Handlers are plain `def`: the store is synchronous, and FastAPI runs sync
handlers in its threadpool so a slow query never blocks the event loop.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_auth_service, get_current_user, get_identity
from api.limiter import limiter, login_rate_limit
from api.models import FlatErrorResponse, LoginResponse, UserResponse
from auth.exceptions import AuthFailure, MissingField
from auth.models import Identity, User
from auth.service import AuthService

# Auth policy:
# - POST  /api/users/login:          public -- login endpoint must be unauthenticated
# - POST  /api/users/registration:   public
# - PATCH /api/users/userstats:      requires bearer token (get_current_user)
# - GET   /api/users/{user_id}:      requires bearer token (get_identity)
router = APIRouter()


def _fields(body: Any) -> dict:
    # A JSON array or scalar body carries no named fields at all.
    return body if isinstance(body, dict) else {}


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # [H1] below @router so the route registers the limited wrapper
def login(
    request: Request,
    body: Any = Body(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with username and password; return a bearer token.

    Unknown username and wrong password produce the identical 400 body.
    """
    try:
        token = auth.login(_fields(body))
    except (MissingField, AuthFailure) as exc:
        resp = JSONResponse(status_code=400, content=FlatErrorResponse(error=exc.message).model_dump())
        resp.headers["Cache-Control"] = "no-store"  # [H2]
        return resp

    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [H2]
    return resp


@router.post("/users/registration", response_model=UserResponse, status_code=201)
def register(
    body: Any = Body(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account from {username, password, age, height, userweight}."""
    user = auth.register(_fields(body))
    return JSONResponse(
        status_code=201,
        content=UserResponse.from_user(user).model_dump(),
        headers={"Location": f"/api/users/{user.id}"},
    )


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.patch("/users/userstats", response_model=UserResponse)
def update_user_stats(
    body: Any = Body(default=None),
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Apply a partial update of age, height and/or userweight to the caller."""
    updated = auth.update_stats(current_user, _fields(body))
    return UserResponse.from_user(updated)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Return the public profile of any user to an authenticated caller."""
    user = auth.store.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail={"message": "User doesn't exist"})
    return UserResponse.from_user(user)
