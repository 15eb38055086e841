"""
Pydantic schemas for admin authentication endpoints.
"""

from typing import Optional

from pydantic import Field

from quizfest.schemas.base import APIModel


class LoginRequest(APIModel):
    """
    Admin login body.

    Lengths are bounded so oversized payloads fail validation before any
    credential comparison runs.
    """
    username: str = Field(..., min_length=1, max_length=256, description="Admin username")
    password: str = Field(..., min_length=1, max_length=1024, description="Admin password")


class LoginResponse(APIModel):
    success: bool = True
    requires_two_factor: bool = Field(
        description="True when a TOTP code must be submitted to /admin/2fa/verify"
    )


class TwoFactorVerifyRequest(APIModel):
    token: str = Field(..., pattern=r"^\d{6}$", description="6-digit code from the authenticator app")


class TwoFactorSetupResponse(APIModel):
    """
    Freshly generated TOTP enrolment material.

    Advisory only: the server does not store the secret. The operator must
    set ADMIN_TOTP_SECRET and restart for it to take effect.
    """
    secret: str = Field(description="Base32 TOTP secret")
    qr_code_image: str = Field(description="PNG QR code as a data URL")
    provisioning_uri: str = Field(description="otpauth:// URI encoded in the QR code")


class SuccessResponse(APIModel):
    success: bool = True


class AdminStatusResponse(APIModel):
    authenticated: bool
    user: Optional[str] = None
    two_factor_enabled: bool
    two_factor_verified: bool
