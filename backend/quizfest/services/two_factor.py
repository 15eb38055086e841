"""
TOTP second factor for the admin login.

RFC 6238 codes: 30-second steps, 6 digits, base32 secret. Verification
accepts codes from a configurable number of steps either side of the
current one to absorb clock drift between server and phone.
"""

import base64
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import pyotp
import qrcode

TOTP_DIGITS = 6
TOTP_INTERVAL = 30


@dataclass(frozen=True)
class TwoFactorProvisioning:
    """
    Enrolment material for an authenticator app.

    Attributes:
        secret: Base32 secret to store as ADMIN_TOTP_SECRET
        provisioning_uri: otpauth:// URI
        qr_code_image: PNG rendering of the URI as a data URL
    """
    secret: str
    provisioning_uri: str
    qr_code_image: str


class TwoFactorVerifier:
    """
    Verifies and provisions TOTP codes.

    Example:
        verifier = TwoFactorVerifier(tolerance_steps=2)
        if not verifier.verify(principal.totp_secret, submitted_code):
            raise AuthenticationError("Invalid verification code")
    """

    def __init__(self, tolerance_steps: int = 2, issuer: str = "Quiz Fest Admin"):
        self.tolerance_steps = tolerance_steps
        self.issuer = issuer

    def verify(self, secret: str, code: str, for_time: Optional[float] = None) -> bool:
        """
        Check a code against the secret.

        Args:
            secret: Base32 TOTP secret
            code: Submitted code; anything other than 6 digits is rejected
            for_time: Unix time to verify against (defaults to now)

        Returns:
            True if the code matches any step within the tolerance window
        """
        if not code or len(code) != TOTP_DIGITS or not code.isdigit():
            return False

        totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
        at = time.time() if for_time is None else for_time
        return totp.verify(code, for_time=at, valid_window=self.tolerance_steps)

    def now(self, secret: str, for_time: Optional[float] = None) -> str:
        """Current code for secret (used by tests and operator tooling)."""
        totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
        return totp.at(time.time() if for_time is None else for_time)

    def generate_secret(self) -> str:
        return pyotp.random_base32()

    def build_provisioning(self, account_name: str, secret: Optional[str] = None) -> TwoFactorProvisioning:
        """
        Create a secret (unless given) with its provisioning URI and QR code.

        Nothing is stored: the operator copies the secret into the
        environment to enable the second factor.
        """
        secret = secret or self.generate_secret()
        uri = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL).provisioning_uri(
            name=account_name,
            issuer_name=self.issuer,
        )

        qr = qrcode.QRCode(version=1, box_size=10, border=5)
        qr.add_data(uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        img.save(buffer, format="PNG")

        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return TwoFactorProvisioning(
            secret=secret,
            provisioning_uri=uri,
            qr_code_image=f"data:image/png;base64,{encoded}",
        )
