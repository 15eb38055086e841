"""
FastAPI dependency functions.

Provides reusable dependency injection functions for FastAPI routes:
application settings and services from app.state, the resolved client
address, database sessions, and the admin session gates.

Session gates:
- get_session_claims: claims from a valid cookie, or None
- require_session: any valid admin token, including one still waiting
  for the TOTP step (401 otherwise)
- require_admin: a fully authenticated admin session (401 otherwise)
"""

from typing import Annotated, Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from quizfest.core.audit import audit_event
from quizfest.core.config import Settings
from quizfest.core.database import get_db
from quizfest.core.exceptions import AuthenticationError
from quizfest.core.security import (
    AdminPrincipal,
    SessionClaims,
    constant_time_equals,
    decode_session_token,
    is_fully_authenticated,
)
from quizfest.middleware.request_context import resolve_client_ip
from quizfest.services.two_factor import TwoFactorVerifier


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_principal(request: Request) -> AdminPrincipal:
    return request.app.state.principal


def get_two_factor_verifier(request: Request) -> TwoFactorVerifier:
    return request.app.state.two_factor_verifier


def get_client_ip(request: Request) -> str:
    """
    Client address resolved by RequestContextMiddleware.

    Falls back to resolving it here when the middleware is not installed.
    """
    client_ip = getattr(request.state, "client_ip", None)
    if client_ip:
        return client_ip
    return resolve_client_ip(request, request.app.state.settings.trusted_proxy_count)


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Principal = Annotated[AdminPrincipal, Depends(get_principal)]
Verifier = Annotated[TwoFactorVerifier, Depends(get_two_factor_verifier)]
ClientIP = Annotated[str, Depends(get_client_ip)]
RequestID = Annotated[Optional[str], Depends(get_request_id)]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def set_session_cookie(response: Response, token: str, settings: Settings, max_age_seconds: int) -> None:
    """
    Store a session token in the HTTP-only admin cookie.

    Setting the cookie always replaces whatever token the client held,
    so a pre-login token can never survive into an authenticated session.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


async def get_session_claims(
    request: Request,
    settings: AppSettings,
    principal: Principal,
) -> Optional[SessionClaims]:
    """
    Decode the admin cookie.

    Returns:
        Claims of a valid token issued to the configured admin, or None when
        the cookie is missing, malformed, forged, expired, too old, or names
        another user.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    claims = decode_session_token(
        token,
        settings.admin_session_secret,
        max_age_seconds=settings.session_max_age_hours * 3600,
    )
    if claims is None or not constant_time_equals(claims.user, principal.username):
        return None
    return claims


OptionalSession = Annotated[Optional[SessionClaims], Depends(get_session_claims)]


async def require_session(
    claims: OptionalSession,
    client_ip: ClientIP,
    request_id: RequestID,
) -> SessionClaims:
    """
    Require a valid admin token, fully authenticated or not.

    Raises:
        AuthenticationError: No valid token
    """
    if claims is None:
        audit_event(
            "admin.access",
            outcome="denied",
            actor=None,
            client_ip=client_ip,
            request_id=request_id,
            level="warning",
            reason="no_session",
        )
        raise AuthenticationError()
    return claims


async def require_admin(
    claims: OptionalSession,
    principal: Principal,
    client_ip: ClientIP,
    request_id: RequestID,
) -> SessionClaims:
    """
    Require a fully authenticated admin session.

    A token that has not passed the TOTP step is rejected exactly like a
    missing one.

    Raises:
        AuthenticationError: No valid token, or second factor pending

    Example:
        @router.get("/admin/contact")
        async def list_contact(admin: AdminSession):
            ...
    """
    if claims is None or not is_fully_authenticated(claims, principal):
        audit_event(
            "admin.access",
            outcome="denied",
            actor=claims.user if claims else None,
            client_ip=client_ip,
            request_id=request_id,
            level="warning",
            reason="two_factor_pending" if claims else "no_session",
        )
        raise AuthenticationError()
    return claims


PendingOrFullSession = Annotated[SessionClaims, Depends(require_session)]
AdminSession = Annotated[SessionClaims, Depends(require_admin)]
