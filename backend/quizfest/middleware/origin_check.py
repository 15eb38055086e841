"""
Origin monitoring for state-changing admin requests.

The session cookie is SameSite, which already stops most cross-site
requests. This middleware adds visibility: non-GET admin requests with no
Origin/Referer, or with one that names a different host, are logged as
suspicious. Requests are never blocked, since some privacy tools strip
these headers from legitimate traffic.
"""

from typing import Callable, Iterable
from urllib.parse import urlsplit

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from quizfest.core.logging_config import get_logger

logger = get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class OriginCheckMiddleware(BaseHTTPMiddleware):
    """
    Log admin requests whose origin does not match the serving host.

    Example:
        app.add_middleware(OriginCheckMiddleware, admin_prefix="/api/admin",
                           allowed_origins=settings.cors_origins)
    """

    def __init__(self, app, admin_prefix: str = "/api/admin", allowed_origins: Iterable[str] = ()):
        super().__init__(app)
        self.admin_prefix = admin_prefix
        self.allowed_hosts = {
            urlsplit(origin).netloc for origin in allowed_origins if urlsplit(origin).netloc
        }

    def is_suspicious(self, request: Request) -> bool:
        origin = request.headers.get("Origin") or request.headers.get("Referer")
        if not origin:
            return True
        origin_host = urlsplit(origin).netloc
        host = request.headers.get("Host", "")
        return origin_host != host and origin_host not in self.allowed_hosts

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        if (
            request.method not in SAFE_METHODS
            and request.url.path.startswith(self.admin_prefix)
            and self.is_suspicious(request)
        ):
            logger.warning(
                "Admin request with missing or mismatched origin",
                extra={
                    "method": request.method,
                    "client_ip": getattr(request.state, "client_ip", None),
                    "request_id": getattr(request.state, "request_id", None),
                    "origin_present": bool(
                        request.headers.get("Origin") or request.headers.get("Referer")
                    ),
                }
            )
        return await call_next(request)
