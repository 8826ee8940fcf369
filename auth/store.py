"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. The orchestrator and routes never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Failure model:
  Absence is a normal result (None), never an exception. Connectivity
  problems and timeouts are raised as StoreUnavailable so callers can tell
  "no such user" apart from "database down". A UNIQUE violation on insert is
  raised as UsernameTaken: the pre-insert lookup in the orchestrator can race
  with a concurrent registration, and the constraint is the final word.

Timeouts:
  SQLite gets the driver's busy timeout; server databases get a pool checkout
  timeout and a connect timeout. All come from the same setting.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.exceptions import StoreUnavailable, UsernameTaken
from auth.models import User

logger = logging.getLogger("fittrack.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("age", Integer),
    Column("height", Float),
    Column("weight", Float),
    Column("created_at", String(32), nullable=False),
)

_STAT_COLUMNS = {"age", "height", "weight"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _engine_options(db_url: str, timeout: float) -> dict:
    """Build create_engine() kwargs that bound every store call by `timeout`.

    SQLite in-memory URLs use SingletonThreadPool, which rejects pool_timeout,
    so SQLite is bounded by the driver's busy timeout only.
    """
    if db_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout,
        "connect_args": {"connect_timeout": max(1, int(timeout))},
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///fittrack.db")
        user = store.create_user(User(username="sam", hashed_password=hash_password("s3cretpass")))
        store.find_user_by_username("sam")
        store.close()
    """

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        self.engine: Engine = create_engine(db_url, **_engine_options(db_url, timeout))
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            self.engine.dispose()
            raise StoreUnavailable(str(exc)) from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_user_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        except SQLAlchemyError as exc:
            raise _unavailable("find_user_by_username", exc) from exc
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise _unavailable("get_by_id", exc) from exc
        return _row_to_user(row) if row is not None else None

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and created_at filled in.

        Raises UsernameTaken if the UNIQUE(username) constraint fires.
        """
        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        age=user.age,
                        height=user.height,
                        weight=user.weight,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise UsernameTaken(user.username) from exc
        except SQLAlchemyError as exc:
            raise _unavailable("create_user", exc) from exc
        return User(
            id=result.inserted_primary_key[0],
            username=user.username,
            hashed_password=user.hashed_password,
            age=user.age,
            height=user.height,
            weight=user.weight,
            created_at=created_at,
        )

    def update_stats(self, user_id: int, **stats) -> User | None:
        """Update any of age, height, weight and return the refreshed user.

        Only column names in _STAT_COLUMNS are accepted; anything else raises
        ValueError before SQL is built. Returns None if user_id was not found.
        """
        unknown = set(stats) - _STAT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown stat columns: {sorted(unknown)!r}")
        try:
            with self.engine.connect() as conn:
                if stats:
                    conn.execute(_users.update().where(_users.c.id == user_id).values(**stats))
                    conn.commit()
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise _unavailable("update_stats", exc) from exc
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.warning("Store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        age=row.age,
        height=row.height,
        weight=row.weight,
        created_at=row.created_at,
    )


def _unavailable(operation: str, exc: SQLAlchemyError) -> StoreUnavailable:
    logger.error("Store operation %s failed: %s", operation, exc.__class__.__name__)
    return StoreUnavailable(str(exc))
