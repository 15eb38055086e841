"""
Security headers middleware for protection against common web vulnerabilities.

Headers implemented (OWASP recommendations):
- X-Content-Type-Options: Prevents MIME-type sniffing
- X-Frame-Options: Prevents clickjacking (legacy, CSP frame-ancestors covers it)
- Content-Security-Policy: Protection against XSS and data injection
- Referrer-Policy / Permissions-Policy
- Strict-Transport-Security: production only, where TLS is terminated in front

API responses also get Cache-Control: no-store, since admin responses carry
registrant data that must not sit in shared or browser caches.

References:
- OWASP Secure Headers Project: https://owasp.org/www-project-secure-headers/
"""

from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from quizfest.core.logging_config import get_logger

logger = get_logger(__name__)

# The registration site loads Google Fonts; nothing else is third-party
DEFAULT_CSP = (
    "default-src 'self'; "
    "script-src 'self'; "
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
    "img-src 'self' data: https:; "
    "font-src 'self' data: https://fonts.gstatic.com; "
    "connect-src 'self'; "
    "media-src 'self'; "
    "object-src 'none'; "
    "frame-src 'none'; "
    "frame-ancestors 'none'; "
    "base-uri 'self'; "
    "form-action 'self'"
)

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all HTTP responses.

    Example:
        app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.environment == "production")
    """

    def __init__(
        self,
        app,
        enable_hsts: bool = False,
        csp_policy: Optional[str] = None,
        api_prefix: str = "/api",
    ):
        """
        Args:
            app: ASGI application
            enable_hsts: Send Strict-Transport-Security
            csp_policy: Custom CSP policy (defaults to DEFAULT_CSP)
            api_prefix: Responses under this prefix are marked no-store
        """
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.csp_policy = csp_policy or DEFAULT_CSP
        self.api_prefix = api_prefix

        logger.info(
            "Security headers middleware initialized",
            extra={"enable_hsts": enable_hsts}
        )

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = self.csp_policy
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "camera=(), "
            "microphone=(), "
            "geolocation=(), "
            "payment=()"
        )

        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE

        if request.url.path.startswith(self.api_prefix):
            response.headers.setdefault("Cache-Control", "no-store")

        return response
