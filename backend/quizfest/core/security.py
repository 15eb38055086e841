"""
Security module for admin authentication.

Provides fixed-time credential comparison, bcrypt password hashing, and the
stateless signed session token carried in the admin cookie.

Token format:
    base64url(json(payload)) + "." + base64url(HMAC-SHA256(base64url(payload), secret))

The server keeps no session state; a token is valid until its embedded
expiry (bounded by a configured maximum age) and cannot be revoked early.
"""

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from typing import Optional

import bcrypt
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from quizfest.core.config import Settings


# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_BYTES = 72


class AdminPrincipal(BaseModel):
    """
    The single configured admin identity.

    Built once from settings at startup; immutable for the process lifetime.
    Exactly one of password / password_hash is set.
    """
    model_config = ConfigDict(frozen=True)

    username: str
    password: Optional[str] = None
    password_hash: Optional[str] = None
    totp_secret: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdminPrincipal":
        return cls(
            username=settings.admin_username,
            password=settings.admin_password,
            password_hash=settings.admin_password_hash,
            totp_secret=settings.admin_totp_secret,
        )

    @property
    def two_factor_enabled(self) -> bool:
        return self.totp_secret is not None


class SessionClaims(BaseModel):
    """
    Payload of a signed admin session token.

    Attributes:
        user: Admin username the session belongs to
        issued_at: Unix time the token was signed
        expiry: Unix time after which the token is rejected
        two_factor_verified: True once the TOTP step has been passed
        session_id: Random identifier, fresh for every issued token
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user: str = Field(min_length=1)
    issued_at: float
    expiry: float
    two_factor_verified: bool = False
    session_id: str = Field(min_length=1)


def constant_time_equals(provided: str, expected: str) -> bool:
    """
    Compare two strings without leaking how many leading characters match.

    Strings of different byte length are rejected immediately: that reveals
    only whether the lengths match, never anything about content.
    """
    provided_bytes = provided.encode("utf-8")
    expected_bytes = expected.encode("utf-8")
    if len(provided_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(provided_bytes, expected_bytes)


def verify_credentials(
    provided_user: str,
    provided_pass: str,
    expected_user: str,
    expected_pass: str,
) -> bool:
    """
    Check a username/password pair against the expected pair.

    Both comparisons always run, so response time does not reveal whether
    the username or the password was wrong.

    Returns:
        True only if both match
    """
    user_ok = constant_time_equals(provided_user, expected_user)
    pass_ok = constant_time_equals(provided_pass, expected_pass)
    return user_ok and pass_ok


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The bcrypt hash to compare against

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Used by scripts/hash_password.py to produce ADMIN_PASSWORD_HASH values.
    Passwords longer than 72 bytes are truncated (bcrypt limit).
    """
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_admin_credentials(username: str, password: str, principal: AdminPrincipal) -> bool:
    """
    Check submitted credentials against the configured admin principal.

    Plaintext secrets go through verify_credentials; a configured bcrypt
    hash is checked with bcrypt while the username is still compared in
    fixed time.
    """
    if principal.password_hash is None:
        return verify_credentials(username, password, principal.username, principal.password or "")

    user_ok = constant_time_equals(username, principal.username)
    pass_ok = verify_password(password, principal.password_hash)
    return user_ok and pass_ok


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _signature(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        encoded_payload.encode("ascii"),
        hashlib.sha256,
    ).digest()
    return _b64encode(digest)


def sign_session_token(claims: SessionClaims, secret: str) -> str:
    """
    Serialize and sign session claims.

    Args:
        claims: Payload to sign
        secret: Server HMAC key (ADMIN_SESSION_SECRET)

    Returns:
        Token string "<payload>.<signature>"
    """
    payload = json.dumps(
        claims.model_dump(by_alias=True),
        separators=(",", ":"),
        sort_keys=True,
    )
    encoded_payload = _b64encode(payload.encode("utf-8"))
    return f"{encoded_payload}.{_signature(encoded_payload, secret)}"


def create_session_token(
    user: str,
    secret: str,
    lifetime_seconds: float,
    two_factor_verified: bool = False,
    now: Optional[float] = None,
) -> tuple[str, SessionClaims]:
    """
    Issue a new token for an admin.

    Every call generates a fresh session_id, so a token issued at login never
    shares an identifier with anything the client presented before.

    Returns:
        Tuple of (token string, claims)

    Example:
        >>> token, claims = create_session_token("admin", secret, 7200)
        >>> response.set_cookie(cookie_name, token, httponly=True)
    """
    issued_at = time.time() if now is None else now
    claims = SessionClaims(
        user=user,
        issued_at=issued_at,
        expiry=issued_at + lifetime_seconds,
        two_factor_verified=two_factor_verified,
        session_id=secrets.token_urlsafe(16),
    )
    return sign_session_token(claims, secret), claims


def decode_session_token(
    token: str,
    secret: str,
    max_age_seconds: float,
    now: Optional[float] = None,
) -> Optional[SessionClaims]:
    """
    Verify a token and return its claims.

    Rejects (returns None) when the token is malformed, the signature does
    not match, the expiry has passed, or the token is older than
    max_age_seconds. Callers must not distinguish between these cases.
    """
    if not token or token.count(".") != 1:
        return None

    encoded_payload, signature = token.split(".")
    try:
        expected = _signature(encoded_payload, secret)
    except UnicodeEncodeError:
        return None
    if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
        return None

    try:
        claims = SessionClaims.model_validate(json.loads(_b64decode(encoded_payload)))
    except (binascii.Error, ValueError, ValidationError):
        return None

    current = time.time() if now is None else now
    if current >= claims.expiry:
        return None
    if current - claims.issued_at > max_age_seconds:
        return None
    return claims


def is_fully_authenticated(claims: SessionClaims, principal: AdminPrincipal) -> bool:
    """
    A session may perform privileged operations only when it belongs to the
    configured admin and, if TOTP is configured, has passed the second factor.
    """
    if not constant_time_equals(claims.user, principal.username):
        return False
    return claims.two_factor_verified or not principal.two_factor_enabled
