"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for FitTrack happen here. No module should
call os.getenv() or os.environ.get() directly.

Design patterns used:
  Explicit settings object: Settings is constructed once at startup (asgi.py,
      main.py) and passed into create_app(). Components receive only the
      values they need through their constructors -- the TokenService gets the
      secret, the UserStore gets the database URL.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation once all fields are
      resolved. Development mode falls back to well-known local defaults;
      production and test refuse to start without an explicit secret and
      database URL.

Security notes:
  [S1] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every token.

  [S2] The development default secret is a public literal. It is rejected in
       every environment except development, so it cannot leak into a deploy.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("fittrack.config")

DEV_JWT_SECRET = "fittrack-development-only-secret-do-not-deploy"
DEV_DATABASE_URL = "sqlite:///fittrack.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field has a default so Settings() can be built in development
    without a .env file. Outside development, DATABASE_URL and JWT_SECRET
    must be supplied.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: Literal["development", "production", "test"] = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # Empty string is the sentinel for "not configured". The validator below
    # either substitutes the development default or raises.
    database_url: str = ""
    jwt_secret: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 0 means tokens carry no exp claim and stay valid until the secret rotates.
    token_expire_seconds: int = Field(default=0, ge=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the DATABASE_URL / JWT_SECRET policy [S1][S2].

        Development: missing values fall back to local defaults. Using the
            default secret logs a warning on every startup.

        Production and test: both values are required, and the development
            default secret is refused.
        """
        is_dev = self.environment == "development"

        if not self.database_url:
            if not is_dev:
                raise ValueError(
                    f"DATABASE_URL is required when ENVIRONMENT={self.environment}. "
                    "Set DATABASE_URL in your environment or .env file."
                )
            self.database_url = DEV_DATABASE_URL

        if not self.jwt_secret:
            if not is_dev:
                raise ValueError(
                    f"JWT_SECRET is required when ENVIRONMENT={self.environment}. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run with local defaults, set ENVIRONMENT=development."
                )
            self.jwt_secret = DEV_JWT_SECRET

        if self.jwt_secret == DEV_JWT_SECRET:
            if not is_dev:
                raise ValueError("The development JWT_SECRET must not be used outside development.")
            logger.warning("WARNING: Using the development JWT_SECRET. Do not deploy this configuration.")

        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the process Settings, built on first call.

    Only entry points (asgi.py, main.py) call this. Library code takes a
    Settings instance or the individual values it needs as arguments.

    In tests: construct Settings(...) directly, or call
    get_settings.cache_clear() after changing environment variables.
    """
    return Settings()
