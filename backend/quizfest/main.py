"""
Quiz Fest Registration - FastAPI Application Entry Point

This module builds the FastAPI application with all middleware, routes,
exception handlers and lifecycle event handlers.

Run with:
    uvicorn quizfest.main:create_app --factory --app-dir backend
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quizfest import __version__
from quizfest.api.routes import admin_auth, admin_registrations, health, public
from quizfest.core.config import Settings, get_settings
from quizfest.core.database import close_db, create_session_maker, get_async_engine, init_db
from quizfest.core.exceptions import InvalidRequestError, QuizFestError
from quizfest.core.logging_config import get_logger, setup_logging
from quizfest.core.security import AdminPrincipal
from quizfest.middleware.logging import LoggingMiddleware
from quizfest.middleware.origin_check import OriginCheckMiddleware
from quizfest.middleware.rate_limit import RateLimitMiddleware, build_route_limits
from quizfest.middleware.request_context import RequestContextMiddleware
from quizfest.middleware.security_headers import SecurityHeadersMiddleware
from quizfest.services.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
    RedisRateLimitStore,
)
from quizfest.services.two_factor import TwoFactorVerifier

logger = get_logger(__name__)


def build_rate_limit_store(settings: Settings) -> RateLimitStore:
    if settings.rate_limit_backend == "redis":
        return RedisRateLimitStore.from_url(settings.redis_url)
    return InMemoryRateLimitStore(sweep_interval=settings.rate_limit_sweep_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Startup:
        - Set up logging
        - Create the database engine and tables

    Shutdown:
        - Close database connections
        - Close the rate limit store
    """
    settings: Settings = app.state.settings

    if settings.log_setup_on_startup:
        setup_logging(level=settings.log_level, json_format=settings.log_json)

    engine = get_async_engine(settings.database_url)
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)
    await init_db(engine, create_tables=settings.create_tables_on_startup)

    logger.info(
        "Application started",
        extra={
            "environment": settings.environment,
            "two_factor_enabled": settings.two_factor_enabled,
            "rate_limit_backend": settings.rate_limit_backend,
            "allow_bulk_listing": settings.allow_bulk_listing,
        }
    )

    yield

    await close_db(engine)
    await app.state.rate_limiter.close()
    logger.info("Application stopped")


def _field_name(loc: tuple) -> str:
    # Drop the "body"/"path"/"query" source marker
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


async def quizfest_error_handler(request: Request, exc: QuizFestError) -> JSONResponse:
    content = {"detail": exc.message}
    if isinstance(exc, InvalidRequestError) and exc.errors:
        content["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error(
            "Request failed with server error",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "exception_type": type(exc).__name__,
            }
        )
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report invalid fields without echoing submitted values.
    """
    errors = [
        {"field": _field_name(tuple(error.get("loc", ()))), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": errors},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings (tests); defaults to get_settings(),
            which fails fast when required secrets are missing

    Returns:
        Configured FastAPI instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.project_name,
        version=__version__,
        description="Quiz festival registration with protected admin access",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=None if settings.environment == "production" else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.principal = AdminPrincipal.from_settings(settings)
    app.state.two_factor_verifier = TwoFactorVerifier(
        tolerance_steps=settings.totp_tolerance_steps,
        issuer=settings.totp_issuer,
    )
    app.state.rate_limiter = RateLimiter(build_rate_limit_store(settings))

    # Middleware is executed in reverse order of registration
    # (last registered = first executed)
    app.add_middleware(
        RateLimitMiddleware,
        limits=build_route_limits(settings),
        trusted_proxy_count=settings.trusted_proxy_count,
    )
    app.add_middleware(
        OriginCheckMiddleware,
        admin_prefix=f"{settings.api_prefix}/admin",
        allowed_origins=settings.cors_origins,
    )
    # Outside the rate limiter so 429 responses carry the headers too
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.environment == "production",
        api_prefix=settings.api_prefix or "/",
    )
    app.add_middleware(LoggingMiddleware, api_prefix=settings.api_prefix)
    app.add_middleware(
        RequestContextMiddleware,
        trusted_proxy_count=settings.trusted_proxy_count,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.add_exception_handler(QuizFestError, quizfest_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(admin_auth.router, prefix=settings.api_prefix, tags=["admin-auth"])
    app.include_router(admin_registrations.router, prefix=settings.api_prefix, tags=["admin"])
    app.include_router(public.router, prefix=settings.api_prefix, tags=["public"])

    return app
