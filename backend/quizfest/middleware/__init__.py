"""
HTTP middleware for the registration service.
"""

from quizfest.middleware.logging import LoggingMiddleware
from quizfest.middleware.origin_check import OriginCheckMiddleware
from quizfest.middleware.rate_limit import RateLimitMiddleware, RouteRateLimit, build_route_limits
from quizfest.middleware.request_context import RequestContextMiddleware, resolve_client_ip
from quizfest.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "LoggingMiddleware",
    "OriginCheckMiddleware",
    "RateLimitMiddleware",
    "RequestContextMiddleware",
    "RouteRateLimit",
    "SecurityHeadersMiddleware",
    "build_route_limits",
    "resolve_client_ip",
]
