"""
API response models for FitTrack REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request bodies are NOT modelled here: the login and registration contracts
report missing fields with their own 400 messages, so routes take the raw JSON
body and let the AuthService check presence in declared order.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import User

# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Response body for POST /api/users/login."""

    model_config = ConfigDict(frozen=True)

    token: str


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never part of it."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    age: Optional[int] = None
    height: Optional[float] = None
    userweight: Optional[float] = None
    created_at: str = ""

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            age=user.age,
            height=user.height,
            userweight=user.weight,
            created_at=user.created_at or "",
        )


class ErrorMessage(BaseModel):
    """Nested error payload: {"error": {"message": ...}}."""

    model_config = ConfigDict(frozen=True)

    message: str


class ErrorResponse(BaseModel):
    """Error envelope for validation and infrastructure failures."""

    model_config = ConfigDict(frozen=True)

    error: ErrorMessage


class FlatErrorResponse(BaseModel):
    """Error envelope for authentication failures: {"error": "..."}."""

    model_config = ConfigDict(frozen=True)

    error: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
