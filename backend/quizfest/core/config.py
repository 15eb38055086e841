"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration management with validation,
loading settings from environment variables and .env files.

Admin secrets are validated at construction time, so a missing or
placeholder secret stops the process at startup instead of surfacing as a
per-request failure.
"""

import base64
import binascii
import json
from functools import lru_cache
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


PLACEHOLDER_SECRETS = {
    "generate-with-openssl-rand-hex-32",
    "CHANGE_ME_32_CHARS_MIN",
    "your-secret-key-here",
    "dev-secret-key-123",
}


class RateLimitRule(BaseModel):
    """
    Fixed-window limit for one route.

    Attributes:
        max_requests: Requests allowed per window
        window_seconds: Window length in seconds
    """
    max_requests: int = Field(gt=0)
    window_seconds: int = Field(gt=0)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Secrets should never be committed to code - use .env file (gitignored).
    """

    # API Configuration
    project_name: str = Field(
        default="Quiz Fest Registration",
        description="Project name displayed in API docs"
    )
    api_prefix: str = Field(
        default="/api",
        description="Prefix for all API routes"
    )
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment; production enables Secure cookies and HSTS"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/quizfest.db",
        description="Async SQLAlchemy database URL"
    )
    create_tables_on_startup: bool = Field(
        default=True,
        description="Run metadata.create_all() during application startup"
    )

    # Admin principal
    admin_username: str = Field(
        ...,
        description="Admin dashboard username"
    )
    admin_password: Optional[str] = Field(
        default=None,
        description="Admin dashboard password (plaintext secret)"
    )
    admin_password_hash: Optional[str] = Field(
        default=None,
        description="Bcrypt hash of the admin password (alternative to ADMIN_PASSWORD)"
    )
    admin_session_secret: str = Field(
        ...,
        description="HMAC key for admin session tokens (generate with: openssl rand -hex 32)"
    )
    admin_totp_secret: Optional[str] = Field(
        default=None,
        description="Base32 TOTP secret; when set, every admin login requires a 6-digit code"
    )

    # Session Configuration
    session_lifetime_minutes: int = Field(
        default=120,
        gt=0,
        description="Lifetime of a fully authenticated admin session"
    )
    session_max_age_hours: int = Field(
        default=24,
        gt=0,
        description="Hard cap on token age regardless of its embedded expiry"
    )
    two_factor_pending_minutes: int = Field(
        default=5,
        gt=0,
        description="Lifetime of the token issued between password and TOTP steps"
    )
    totp_tolerance_steps: int = Field(
        default=2,
        ge=0,
        description="Accepted clock drift in 30-second TOTP steps"
    )
    totp_issuer: str = Field(
        default="Quiz Fest Admin",
        description="Issuer label shown in authenticator apps"
    )
    session_cookie_name: str = Field(
        default="quizfest_admin_session",
        description="Name of the admin session cookie"
    )
    session_cookie_samesite: Literal["lax", "strict"] = Field(
        default="lax",
        description="SameSite attribute of the session cookie"
    )
    session_cookie_secure: Optional[bool] = Field(
        default=None,
        description="Force the Secure cookie flag (defaults to True in production)"
    )
    trusted_proxy_count: int = Field(
        default=0,
        ge=0,
        description=(
            "Reverse proxies in front of the app that append to X-Forwarded-For; "
            "0 uses the socket peer as the client address"
        )
    )

    # Data protection policy
    allow_bulk_listing: bool = Field(
        default=False,
        description="Expose GET /admin/registrations; bulk data otherwise only via export"
    )

    # Rate Limiting
    rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Rate limit store; use redis for multi-instance deployments"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for the redis rate limit backend"
    )
    rate_limit_sweep_interval_seconds: int = Field(
        default=300,
        gt=0,
        description="Seconds between sweeps of expired in-memory rate limit entries"
    )
    rate_limit_login: RateLimitRule = RateLimitRule(max_requests=5, window_seconds=15 * 60)
    rate_limit_two_factor: RateLimitRule = RateLimitRule(max_requests=5, window_seconds=15 * 60)
    rate_limit_search: RateLimitRule = RateLimitRule(max_requests=20, window_seconds=60)
    rate_limit_admin_read: RateLimitRule = RateLimitRule(max_requests=20, window_seconds=60)
    rate_limit_export: RateLimitRule = RateLimitRule(max_requests=3, window_seconds=60)
    rate_limit_registration: RateLimitRule = RateLimitRule(max_requests=3, window_seconds=60)
    rate_limit_contact: RateLimitRule = RateLimitRule(max_requests=3, window_seconds=60)

    # CORS Configuration
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:5000"],
        description="Allowed CORS origins (frontend URLs)"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow cookies/credentials in CORS requests"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")
    log_setup_on_startup: bool = Field(
        default=True,
        description="Install the root log handler during application startup"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
        env_nested_delimiter="__",  # RATE_LIMIT_LOGIN__MAX_REQUESTS=10
        nested_model_default_partial_update=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """
        Parse cors_origins from JSON string or list.

        Supports comma-separated origins for easier .env configuration.
        """
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("admin_username")
    @classmethod
    def validate_admin_username(cls, v: str) -> str:
        if not v or v.strip() == "":
            raise ValueError("ADMIN_USERNAME is required and cannot be empty")
        return v

    @field_validator("admin_password", "admin_password_hash", "redis_url", mode="before")
    @classmethod
    def empty_as_unset(cls, v: Optional[str]) -> Optional[str]:
        # An empty variable in .env means "not configured"
        if v is None or str(v).strip() == "":
            return None
        return v

    @field_validator("admin_session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """
        Validate that the session signing secret is properly configured.

        Raises ValueError if still using placeholder value or too short.
        """
        if not v or v.strip() == "":
            raise ValueError(
                "ADMIN_SESSION_SECRET is required and cannot be empty. "
                "Generate one with: openssl rand -hex 32"
            )
        if v in PLACEHOLDER_SECRETS:
            raise ValueError(
                "ADMIN_SESSION_SECRET must be set to a secure random value (not placeholder). "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError(
                f"ADMIN_SESSION_SECRET must be at least 32 characters long. "
                f"Current length: {len(v)}. Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator("admin_totp_secret", mode="before")
    @classmethod
    def validate_totp_secret(cls, v: Optional[str]) -> Optional[str]:
        """
        Normalize and validate the base32 TOTP secret.

        Empty strings are treated as "not configured".
        """
        if v is None or str(v).strip() == "":
            return None
        secret = str(v).strip().replace(" ", "").upper()
        padded = secret + "=" * (-len(secret) % 8)
        try:
            base64.b32decode(padded)
        except (binascii.Error, ValueError):
            raise ValueError("ADMIN_TOTP_SECRET must be a valid base32 string")
        if len(secret) < 16:
            raise ValueError("ADMIN_TOTP_SECRET must be at least 16 base32 characters")
        return secret

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Only async drivers are accepted since the engine is an AsyncEngine.
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = ["sqlite+aiosqlite", "postgresql+asyncpg"]
        if not any(v.startswith(scheme + "://") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}"
            )
        return v

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v:
            return ""
        return "/" + v.strip("/")

    @model_validator(mode="after")
    def validate_admin_password(self) -> "Settings":
        """
        Require exactly one form of the admin password.
        """
        has_plain = bool(self.admin_password)
        has_hash = bool(self.admin_password_hash)
        if not has_plain and not has_hash:
            raise ValueError("ADMIN_PASSWORD or ADMIN_PASSWORD_HASH is required")
        if has_plain and has_hash:
            raise ValueError("Set only one of ADMIN_PASSWORD and ADMIN_PASSWORD_HASH")
        if has_hash and not self.admin_password_hash.startswith(("$2a$", "$2b$", "$2y$")):
            raise ValueError("ADMIN_PASSWORD_HASH must be a bcrypt hash")
        return self

    @model_validator(mode="after")
    def validate_rate_limit_backend(self) -> "Settings":
        if self.rate_limit_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when RATE_LIMIT_BACKEND=redis")
        return self

    @property
    def two_factor_enabled(self) -> bool:
        return self.admin_totp_secret is not None

    @property
    def cookie_secure(self) -> bool:
        if self.session_cookie_secure is not None:
            return self.session_cookie_secure
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.

    Raises pydantic.ValidationError on the first call when required
    configuration is missing, which aborts application startup.
    """
    return Settings()
