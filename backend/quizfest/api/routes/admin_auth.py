"""
Admin authentication endpoints.

Login is a two-step flow when ADMIN_TOTP_SECRET is configured:

1. POST /admin/login with username and password. On success the cookie
   holds a short-lived token that is not yet fully authenticated.
2. POST /admin/2fa/verify with the 6-digit code. On success the cookie is
   replaced with a full session token.

Without a TOTP secret, step 1 issues the full session directly. Every
successful step issues a new token with a new session ID.
"""

from fastapi import APIRouter, Response, status

from quizfest.api.dependencies import (
    AdminSession,
    AppSettings,
    ClientIP,
    OptionalSession,
    PendingOrFullSession,
    Principal,
    RequestID,
    Verifier,
    clear_session_cookie,
    set_session_cookie,
)
from quizfest.core.audit import audit_event
from quizfest.core.exceptions import AuthenticationError, InvalidRequestError
from quizfest.core.security import create_session_token, verify_admin_credentials
from quizfest.schemas.auth import (
    AdminStatusResponse,
    LoginRequest,
    LoginResponse,
    SuccessResponse,
    TwoFactorSetupResponse,
    TwoFactorVerifyRequest,
)

router = APIRouter(prefix="/admin")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Admin login",
    description="Verify admin credentials and issue a session cookie",
)
async def login(
    body: LoginRequest,
    response: Response,
    settings: AppSettings,
    principal: Principal,
    client_ip: ClientIP,
    request_id: RequestID,
) -> LoginResponse:
    """
    Check credentials and start a session.

    Returns:
        LoginResponse; requiresTwoFactor tells the client whether to
        prompt for a TOTP code next

    Raises:
        AuthenticationError: Wrong username or password (one message for both)
    """
    if not verify_admin_credentials(body.username, body.password, principal):
        audit_event(
            "admin.login",
            outcome="failure",
            actor=body.username,
            client_ip=client_ip,
            request_id=request_id,
            level="warning",
        )
        raise AuthenticationError("Invalid credentials")

    if principal.two_factor_enabled:
        lifetime = settings.two_factor_pending_minutes * 60
    else:
        lifetime = settings.session_lifetime_minutes * 60

    token, _ = create_session_token(
        principal.username,
        settings.admin_session_secret,
        lifetime_seconds=lifetime,
        two_factor_verified=False,
    )
    set_session_cookie(response, token, settings, lifetime)

    audit_event(
        "admin.login",
        outcome="two_factor_required" if principal.two_factor_enabled else "success",
        actor=principal.username,
        client_ip=client_ip,
        request_id=request_id,
    )
    return LoginResponse(success=True, requires_two_factor=principal.two_factor_enabled)


@router.post(
    "/2fa/verify",
    response_model=SuccessResponse,
    summary="Verify TOTP code",
    description="Complete login with a 6-digit code from the authenticator app",
)
async def verify_two_factor(
    body: TwoFactorVerifyRequest,
    response: Response,
    claims: PendingOrFullSession,
    settings: AppSettings,
    principal: Principal,
    verifier: Verifier,
    client_ip: ClientIP,
    request_id: RequestID,
) -> SuccessResponse:
    """
    Promote a pending session to a fully authenticated one.

    Raises:
        InvalidRequestError: Two-factor authentication is not configured
        AuthenticationError: Wrong or expired code
    """
    if not principal.two_factor_enabled:
        raise InvalidRequestError("Two-factor authentication is not configured")

    if not verifier.verify(principal.totp_secret, body.token):
        audit_event(
            "admin.two_factor",
            outcome="failure",
            actor=claims.user,
            client_ip=client_ip,
            request_id=request_id,
            level="warning",
        )
        raise AuthenticationError("Invalid verification code")

    lifetime = settings.session_lifetime_minutes * 60
    token, _ = create_session_token(
        principal.username,
        settings.admin_session_secret,
        lifetime_seconds=lifetime,
        two_factor_verified=True,
    )
    set_session_cookie(response, token, settings, lifetime)

    audit_event(
        "admin.two_factor",
        outcome="success",
        actor=claims.user,
        client_ip=client_ip,
        request_id=request_id,
    )
    return SuccessResponse(success=True)


@router.post(
    "/2fa/setup",
    response_model=TwoFactorSetupResponse,
    summary="Generate TOTP enrolment material",
)
async def setup_two_factor(
    admin: AdminSession,
    verifier: Verifier,
    client_ip: ClientIP,
    request_id: RequestID,
) -> TwoFactorSetupResponse:
    """
    Generate a new TOTP secret with its QR code.

    Advisory output only: the secret takes effect once the operator sets
    ADMIN_TOTP_SECRET and restarts the service.
    """
    provisioning = verifier.build_provisioning(account_name=admin.user)

    audit_event(
        "admin.two_factor_setup",
        outcome="success",
        actor=admin.user,
        client_ip=client_ip,
        request_id=request_id,
    )
    return TwoFactorSetupResponse(
        secret=provisioning.secret,
        qr_code_image=provisioning.qr_code_image,
        provisioning_uri=provisioning.provisioning_uri,
    )


@router.post(
    "/logout",
    response_model=SuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Admin logout",
)
async def logout(
    response: Response,
    claims: OptionalSession,
    settings: AppSettings,
    client_ip: ClientIP,
    request_id: RequestID,
) -> SuccessResponse:
    """
    Clear the session cookie.

    The token itself stays valid until it expires; there is no server-side
    session to destroy.
    """
    clear_session_cookie(response, settings)

    if claims is not None:
        audit_event(
            "admin.logout",
            outcome="success",
            actor=claims.user,
            client_ip=client_ip,
            request_id=request_id,
        )
    return SuccessResponse(success=True)


@router.get(
    "/me",
    response_model=AdminStatusResponse,
    summary="Current admin session",
)
async def me(claims: PendingOrFullSession, principal: Principal) -> AdminStatusResponse:
    return AdminStatusResponse(
        authenticated=True,
        user=claims.user,
        two_factor_enabled=principal.two_factor_enabled,
        two_factor_verified=claims.two_factor_verified,
    )
