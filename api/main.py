"""
api/main.py -- FastAPI application factory for FitTrack.

Run with:      uvicorn asgi:app --reload
               python main.py serve

create_app(settings) builds a fully wired application. Nothing here reads the
environment: the caller passes a Settings instance (asgi.py passes
get_settings()), and every component receives the values it needs through its
constructor -- UserStore gets the database URL and timeout, TokenService gets
the secret and expiry, AuthService gets both of those objects.

Middleware stack (outermost to innermost; Starlette wraps in reverse order of
registration):
  1. log_requests      -- one access-log line per request under fittrack.api
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter
  3. CORSMiddleware    -- adds CORS headers for allowed browser origins

Lifespan opens the UserStore on startup and disposes it on shutdown. A store
passed in by the caller (tests) is used as-is and left open.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import configure_limits, limiter
from api.models import ErrorMessage, ErrorResponse, FlatErrorResponse, HealthResponse
from api.routes.users import router as users_router
from auth.exceptions import LOGIN_MISSING_FIELD, FitTrackError, StoreUnavailable, Unauthenticated
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.log_config import configure_logging

__version__ = "0.1.0"

logger = logging.getLogger("fittrack.api")

LOGIN_PATH = "/api/users/login"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorMessage(message=message)).model_dump(),
    )


def create_app(settings: Settings | None = None, user_store: UserStore | None = None) -> FastAPI:
    """Build the FitTrack ASGI application.

    Args:
        settings:   Application settings. Defaults to get_settings().
        user_store: Pre-built store to use instead of opening one from
                    settings.database_url. The caller keeps ownership and
                    must close it.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # ---------------------------------------------------------------------------
    # Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
    # ---------------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("FitTrack API starting up (environment=%s)", settings.environment)
        owns_store = user_store is None
        store = user_store or UserStore(settings.database_url, timeout=settings.store_timeout_seconds)
        tokens = TokenService(settings.jwt_secret, expire_seconds=settings.token_expire_seconds)
        app.state.auth_service = AuthService(store, tokens, bcrypt_rounds=settings.bcrypt_rounds)
        logger.info("Auth initialized (token_expire_seconds=%d)", settings.token_expire_seconds)

        yield

        if owns_store:
            store.close()
        logger.info("FitTrack API shutdown complete")

    app = FastAPI(
        title="FitTrack API",
        description="User registration, login and profile stats for the FitTrack client.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    # ---------------------------------------------------------------------------
    # Middleware stack
    # ---------------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    app.add_middleware(SlowAPIMiddleware)

    # SlowAPI looks for app.state.limiter by convention.
    configure_limits(settings.rate_limit_enabled, settings.login_rate_limit)
    app.state.limiter = limiter

    # ---------------------------------------------------------------------------
    # Request logging middleware
    # ---------------------------------------------------------------------------

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # ---------------------------------------------------------------------------
    # Router registration
    # ---------------------------------------------------------------------------

    app.include_router(users_router, prefix="/api", tags=["Users"])

    # ---------------------------------------------------------------------------
    # Exception handlers
    # ---------------------------------------------------------------------------

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
        """401 with a deliberately uninformative body for every token failure."""
        return JSONResponse(
            status_code=exc.status_code,
            content=FlatErrorResponse(error=exc.message).model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        """503 without internal detail; the cause is already logged by the store."""
        logger.error("Store unavailable on %s %s", request.method, request.url.path)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(FitTrackError)
    async def fittrack_error_handler(request: Request, exc: FitTrackError) -> JSONResponse:
        """400-class validation errors: missing/invalid field, password policy, taken username."""
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """429 with Retry-After when a rate limit is exceeded."""
        retry_after = int(getattr(exc, "retry_after", 60))
        response = _error(429, "Too many requests.")
        response.headers["Retry-After"] = str(retry_after)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """422 when FastAPI cannot parse the request (e.g. malformed JSON or path params).

        Login keeps its own contract: an unreadable body is a missing field,
        reported in the flat 400 envelope like every other login failure.
        """
        if request.url.path == LOGIN_PATH:
            return JSONResponse(
                status_code=400,
                content=FlatErrorResponse(error=LOGIN_MISSING_FIELD).model_dump(),
                headers={"Cache-Control": "no-store"},
            )
        return _error(422, "Request validation failed.")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Structured error for all FastAPI/Starlette HTTP exceptions.

        When detail is already a dict, use it directly as the error field rather
        than stringifying it -- str(dict) produces a Python repr, not JSON.
        """
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unexpected server errors.

        The raw exception goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error(500, "An unexpected error occurred.")

    # ---------------------------------------------------------------------------
    # Health endpoint
    #
    # Defined here (not in a router) so it is reachable regardless of router
    # registration. No rate limit -- load balancer checks must not be throttled.
    # ---------------------------------------------------------------------------

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness plus a database round-trip check."""
        store = request.app.state.auth_service.store
        database = "ok" if store.ping() else "error"
        return HealthResponse(version=__version__, components={"app": "ok", "database": database})

    return app
