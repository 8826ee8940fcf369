"""
auth/tokens.py -- Signed session tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with a single symmetric secret. The algorithm list passed
       to decode() holds exactly one entry, so tokens claiming "none" or any
       other algorithm are rejected before their signature is considered.

  Statelessness: nothing is stored server-side. A token stays valid until the
       secret rotates, or until its exp claim passes when expiry is enabled.
       Expiry is off by default (expire_seconds=0); tokens issued without
       expiry are byte-for-byte deterministic for the same inputs.

  Fail closed: verify() raises InvalidToken for every failure mode -- bad
       signature, malformed structure, wrong algorithm, expired, missing
       subject. Callers never see a partially trusted payload.

The TokenService never touches the user store. Whether the subject still
exists is the orchestrator's question.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from auth.exceptions import InvalidToken
from auth.models import Claims

DEFAULT_ALGORITHM = "HS256"

# Registered claims the service manages itself, plus the ones python-jose
# validates on decode; callers may not set them.
_RESERVED_CLAIMS = frozenset({"sub", "exp", "iat", "nbf", "aud", "iss", "jti", "at_hash"})


class TokenService:
    """Issue and verify signed session tokens.

    Usage:
        tokens = TokenService(settings.jwt_secret)
        token = tokens.issue("sam", {"id": 7})
        claims = tokens.verify(token)   # Claims(subject="sam", payload={"id": 7})
    """

    def __init__(self, secret: str, algorithm: str = DEFAULT_ALGORITHM, expire_seconds: int = 0) -> None:
        if not secret:
            raise ValueError("TokenService requires a non-empty secret")
        self._secret = secret
        self._algorithm = algorithm
        self._expire_seconds = expire_seconds

    def issue(self, subject: str, payload: Mapping[str, Any]) -> str:
        """Encode a signed token binding `subject` and `payload`.

        Raises ValueError if payload uses a reserved claim name.
        """
        clashes = _RESERVED_CLAIMS.intersection(payload)
        if clashes:
            raise ValueError(f"Payload may not set reserved claims: {sorted(clashes)!r}")
        claims: dict[str, Any] = dict(payload)
        claims["sub"] = subject
        if self._expire_seconds > 0:
            now = datetime.now(timezone.utc)
            claims["iat"] = now
            claims["exp"] = now + timedelta(seconds=self._expire_seconds)
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Claims:
        """Verify `token` and return its Claims, or raise InvalidToken."""
        try:
            decoded = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc
        subject = decoded.pop("sub", None)
        if not isinstance(subject, str) or not subject:
            raise InvalidToken("token has no subject")
        for claim in _RESERVED_CLAIMS:
            decoded.pop(claim, None)
        return Claims(subject=subject, payload=decoded)
