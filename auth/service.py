"""
auth/service.py -- The auth orchestrator: login, registration, bearer resolution.

AuthService composes the UserStore, the password policy and the TokenService.
It holds no per-request state; every method takes the raw request fields and
either returns a result or raises a FitTrackError subclass that the API layer
renders.

Login never distinguishes an unknown username from a wrong password, in
either the message or the time taken: an unknown username still pays for one
bcrypt check against a dummy hash of the same cost [T1].

Field presence: a field is missing when its key is absent or its value is
null. Registration reports the first missing field in declared order; login
deliberately does not say which one.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from auth.exceptions import (
    LOGIN_MISSING_FIELD,
    AuthFailure,
    InvalidField,
    InvalidToken,
    MissingField,
    Unauthenticated,
    UsernameTaken,
)
from auth.models import Identity, ProfileStats, User
from auth.passwords import DEFAULT_ROUNDS, hash_password, validate_password, verify_password
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("fittrack.auth")

LOGIN_FIELDS = ("username", "password")
REGISTRATION_FIELDS = ("username", "password", "age", "height", "userweight")
STAT_FIELDS = ("age", "height", "userweight")
MAX_USERNAME_LENGTH = 255
STATS_REQUIRED_MESSAGE = "Request body must contain either 'age', 'height' or 'userweight'"

_BEARER_PREFIX = "bearer "


def _first_missing(fields: Mapping[str, Any], names: tuple[str, ...]) -> str | None:
    for name in names:
        if fields.get(name) is None:
            return name
    return None


def _parse_stats(fields: Mapping[str, Any]) -> ProfileStats:
    """Validate profile numbers, naming the first bad field on failure."""
    try:
        return ProfileStats.model_validate(dict(fields))
    except ValidationError as exc:
        loc = exc.errors()[0]["loc"]
        raise InvalidField(str(loc[0]) if loc else "body") from exc


class AuthService:
    """Stateless orchestration over the user store and token service.

    Usage:
        auth = AuthService(store, TokenService(settings.jwt_secret), bcrypt_rounds=settings.bcrypt_rounds)
        user = auth.register({"username": "sam", "password": "a1b2c3d4", "age": 30, ...})
        token = auth.login({"username": "sam", "password": "a1b2c3d4"})
        identity = auth.resolve_bearer(f"bearer {token}")
    """

    def __init__(self, store: UserStore, tokens: TokenService, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.tokens = tokens
        self._rounds = bcrypt_rounds
        # Same cost factor as real hashes so unknown-user checks take as long [T1].
        self._dummy_hash = hash_password("fittrack_timing_dummy", rounds=bcrypt_rounds)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, fields: Mapping[str, Any]) -> str:
        """Check credentials and return a signed token for the user.

        Raises MissingField if username or password is absent, AuthFailure
        for an unknown user or a wrong password.
        """
        if _first_missing(fields, LOGIN_FIELDS) is not None:
            raise MissingField(None, LOGIN_MISSING_FIELD)
        username, password = fields["username"], fields["password"]
        if not isinstance(username, str) or not isinstance(password, str):
            raise AuthFailure()

        user = self.store.find_user_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt [T1]
            verify_password(password, self._dummy_hash)
            logger.info("Login failed: unknown username %r", username)
            raise AuthFailure()
        if not verify_password(password, user.hashed_password):
            logger.info("Login failed: bad password for %r", username)
            raise AuthFailure()

        logger.info("Login succeeded for %r", username)
        return self.tokens.issue(user.username, {"id": user.id})

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, fields: Mapping[str, Any]) -> User:
        """Validate a registration body and create the user.

        Checks run in a fixed order and the first failure wins: presence,
        credential types, username length, password policy, profile numbers,
        username uniqueness.
        """
        missing = _first_missing(fields, REGISTRATION_FIELDS)
        if missing is not None:
            raise MissingField(missing)
        for name in LOGIN_FIELDS:
            if not isinstance(fields[name], str):
                raise InvalidField(name)

        username: str = fields["username"]
        password: str = fields["password"]
        # An empty subject cannot be carried by a token; the column is String(255).
        if not username.strip() or len(username) > MAX_USERNAME_LENGTH:
            raise InvalidField("username")
        validate_password(password)
        stats = _parse_stats({name: fields[name] for name in STAT_FIELDS})

        if self.store.find_user_by_username(username) is not None:
            raise UsernameTaken(username)

        user = self.store.create_user(
            User(
                username=username,
                hashed_password=hash_password(password, rounds=self._rounds),
                age=stats.age,
                height=stats.height,
                weight=stats.userweight,
            )
        )
        logger.info("Registered user %r (id=%s)", user.username, user.id)
        return user

    # ------------------------------------------------------------------
    # Bearer resolution
    # ------------------------------------------------------------------

    def resolve_bearer(self, authorization: str | None) -> Identity:
        """Turn an Authorization header into an Identity.

        The scheme match is case-insensitive ("bearer", "Bearer"). No store
        round-trip: a validly signed token for a deleted user still resolves.
        """
        if not authorization or authorization[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
            raise Unauthenticated()
        token = authorization[len(_BEARER_PREFIX) :].strip()
        if not token:
            raise Unauthenticated()
        try:
            claims = self.tokens.verify(token)
        except InvalidToken as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise Unauthenticated() from exc
        user_id = claims.payload.get("id")
        return Identity(username=claims.subject, user_id=user_id if isinstance(user_id, int) else None)

    def current_user(self, authorization: str | None) -> User:
        """Resolve the bearer token and load the full user record.

        Raises Unauthenticated when the token is bad or its subject no longer
        exists.
        """
        identity = self.resolve_bearer(authorization)
        user = self.store.find_user_by_username(identity.username)
        if user is None:
            raise Unauthenticated()
        return user

    # ------------------------------------------------------------------
    # Profile stats
    # ------------------------------------------------------------------

    def update_stats(self, user: User, fields: Mapping[str, Any]) -> User:
        """Apply a partial age/height/userweight update for `user`."""
        provided = {name: fields[name] for name in STAT_FIELDS if fields.get(name) is not None}
        if not provided:
            raise MissingField(None, STATS_REQUIRED_MESSAGE)
        stats = _parse_stats(provided)
        updated = self.store.update_stats(user.id, **stats.to_columns())
        if updated is None:
            # Row deleted between token resolution and the update.
            raise Unauthenticated()
        return updated
