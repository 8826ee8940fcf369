"""
auth/passwords.py -- Password policy and bcrypt hashing.

Policy: four structural rules checked in a fixed order, first violation wins,
so the same bad password always produces the same message. A password that
starts OR ends with whitespace gets the "must not start with spaces" message;
both cases have shared that text since the first client release.

Hashing: bcrypt used directly (no passlib wrapper). bcrypt only reads the
first 72 bytes of its input and newer releases raise on longer input, so the
encoded password is cut to 72 bytes on both the hash and the verify side.
Policy caps passwords at 36 characters, which only exceeds 72 bytes for
multi-byte text.
"""

from __future__ import annotations

import re

import bcrypt

from auth.exceptions import PolicyViolation

MIN_LENGTH = 8
MAX_LENGTH = 36
DEFAULT_ROUNDS = 12

LENGTH_MESSAGE = f"Password must be between {MIN_LENGTH} and {MAX_LENGTH} characters"
SPACES_MESSAGE = "Password must not start with spaces"
DIGIT_MESSAGE = "Password must contain at least one digit"

_DIGIT_RE = re.compile(r"[0-9]")
_BCRYPT_MAX_BYTES = 72


def validate_password(password: str) -> None:
    """Raise PolicyViolation for the first rule `password` breaks.

    Rules, in order:
      1. 8 to 36 characters inclusive.
      2. No leading whitespace.
      3. No trailing whitespace (same message as rule 2).
      4. At least one ASCII digit.
    """
    if not MIN_LENGTH <= len(password) <= MAX_LENGTH:
        raise PolicyViolation(LENGTH_MESSAGE)
    if password[0].isspace() or password[-1].isspace():
        raise PolicyViolation(SPACES_MESSAGE)
    if not _DIGIT_RE.search(password):
        raise PolicyViolation(DIGIT_MESSAGE)


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares digests in constant time. A malformed stored
    hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False
