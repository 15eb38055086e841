"""
Application exception hierarchy.

Each exception carries the HTTP status and the public message sent to the
client. Messages are deliberately generic: details that could help an
attacker (which factor failed, which variable is missing) belong in
server-side logs only.
"""

from typing import Any, Dict, List, Optional


class QuizFestError(Exception):
    """Base exception for the registration service"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(QuizFestError):
    """Raised when required server configuration is missing or invalid"""

    status_code = 500
    default_message = "Server configuration error"


class AuthenticationError(QuizFestError):
    """Bad credentials, bad TOTP code, or a missing/invalid/expired session"""

    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(QuizFestError):
    """Valid session, but the action is not permitted"""

    status_code = 403
    default_message = "Not permitted"


class InvalidRequestError(QuizFestError):
    """Malformed input; safe field-level details may be attached"""

    status_code = 400
    default_message = "Invalid request"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.errors = errors or []


class RateLimitExceededError(QuizFestError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class NotFoundError(QuizFestError):
    status_code = 404
    default_message = "Not found"


class ConflictError(QuizFestError):
    status_code = 409
    default_message = "Conflict"
