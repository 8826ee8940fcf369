"""
auth/exceptions.py -- Error taxonomy for the authentication subsystem.

Each exception carries the client-facing message and the HTTP status it maps
to. The API layer owns the response envelope; this module owns the words.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

GENERIC_AUTH_FAILURE = "Incorrect username or password"
LOGIN_MISSING_FIELD = "Missing a field in request body"
UNAUTHORIZED = "Unauthorized request"


class FitTrackError(Exception):
    """Base exception for all FitTrack errors surfaced to API clients."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MissingField(FitTrackError):
    """Raised when a required request field is absent or null."""

    def __init__(self, field: str | None, message: str | None = None) -> None:
        """Initialize the exception.

        Args:
            field: Name of the first absent field, or None when the caller
                does not disclose which one.
            message: Override for the default "Missing '<field>'" text.
        """
        self.field = field
        super().__init__(message or f"Missing '{field}' in request body")


class InvalidField(FitTrackError):
    """Raised when a request field is present but has the wrong type or range."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Invalid '{field}' in request body")


class PolicyViolation(FitTrackError):
    """Raised when a candidate password breaks one of the password rules."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class UsernameTaken(FitTrackError):
    """Raised on registration when the username already has a row."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("Username already taken")


class AuthFailure(FitTrackError):
    """Raised for both unknown usernames and wrong passwords.

    The two cases share one message so callers cannot probe which usernames
    exist.
    """

    def __init__(self) -> None:
        super().__init__(GENERIC_AUTH_FAILURE)


class Unauthenticated(FitTrackError):
    """Raised when a protected request carries no usable bearer token."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__(UNAUTHORIZED)


class StoreUnavailable(FitTrackError):
    """Raised when the persistent store cannot be reached or times out."""

    status_code = 503

    def __init__(self, detail: str = "") -> None:
        # detail is for logs only; the client always sees the generic text.
        self.detail = detail
        super().__init__("Service temporarily unavailable")


class InvalidToken(Exception):
    """Raised by TokenService.verify for any token that fails verification.

    Not a FitTrackError: the orchestrator converts it to Unauthenticated, so it
    never reaches an HTTP response.
    """
