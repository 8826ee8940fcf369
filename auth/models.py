"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store and the orchestrator do the work. ProfileStats is the one
pydantic model here because profile numbers arrive as untrusted JSON and need
coercion plus range checks.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class User:
    """A registered FitTrack user.

    hashed_password is a bcrypt hash; the plaintext is never stored or kept
    in memory beyond the request that supplied it.

    weight is exposed over HTTP as "userweight" (the name the mobile client
    has always sent).
    """

    username: str
    hashed_password: str
    id: int | None = None
    age: int | None = None
    height: float | None = None
    weight: float | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Claims:
    """Verified content of a session token: subject plus application payload."""

    subject: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Identity:
    """Who a bearer token speaks for, resolved without a store round-trip."""

    username: str
    user_id: int | None = None


class ProfileStats(BaseModel):
    """Validated profile numbers from a registration or stats-update body.

    All fields are optional so the same model serves partial PATCH updates.
    Unknown keys are ignored; username/password travel in the same body.
    Infinity and NaN are rejected: they cannot be stored and rendered as JSON.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    age: int | None = Field(default=None, ge=0, le=150)
    height: float | None = Field(default=None, gt=0)
    userweight: float | None = Field(default=None, gt=0)

    def to_columns(self) -> dict[str, Any]:
        """Map the provided, non-null fields to users-table column names."""
        return {
            _STAT_COLUMNS[name]: getattr(self, name)
            for name in sorted(self.model_fields_set)
            if getattr(self, name) is not None
        }


# HTTP field name -> users-table column
_STAT_COLUMNS = {"age": "age", "height": "height", "userweight": "weight"}
