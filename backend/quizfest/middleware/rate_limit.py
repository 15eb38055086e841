"""
Rate limiting middleware.

Applies the fixed-window RateLimiter to the routes that need it, each with
its own limit:

- Admin login and TOTP verification: brute force protection
- Admin search, listing and contact inbox: enumeration protection
- Export: bulk data protection
- Public registration and contact forms: spam protection

Routes are matched on method and path before routing, so a rejected
request never reaches a handler or the database. Counters are keyed by
rule name and client address; the raw path is not part of the key.

The 429 body is a fixed message. Limits, remaining counts and reset times
are not disclosed.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from quizfest.core.audit import audit_event
from quizfest.core.config import RateLimitRule, Settings
from quizfest.core.exceptions import RateLimitExceededError
from quizfest.core.logging_config import get_logger
from quizfest.middleware.request_context import resolve_client_ip
from quizfest.services.rate_limiter import RateLimiter

logger = get_logger(__name__)


@dataclass(frozen=True)
class RouteRateLimit:
    """
    Limit applied to one endpoint.

    Attributes:
        name: Counter namespace (e.g. "login")
        method: HTTP method the limit applies to
        pattern: Compiled full-match pattern for the request path
        rule: Requests allowed per window
    """
    name: str
    method: str
    pattern: re.Pattern
    rule: RateLimitRule

    def matches(self, method: str, path: str) -> bool:
        return method == self.method and self.pattern.fullmatch(path) is not None


def _route(name: str, method: str, path: str, rule: RateLimitRule) -> RouteRateLimit:
    # Trailing slash tolerated; path segments matched literally
    return RouteRateLimit(name, method, re.compile(re.escape(path) + "/?"), rule)


def build_route_limits(settings: Settings) -> List[RouteRateLimit]:
    """
    Limits for every rate limited endpoint under settings.api_prefix.
    """
    prefix = settings.api_prefix
    search = RouteRateLimit(
        "search",
        "GET",
        re.compile(re.escape(f"{prefix}/admin/registrations/search/") + r"[^/]+/?"),
        settings.rate_limit_search,
    )
    return [
        _route("login", "POST", f"{prefix}/admin/login", settings.rate_limit_login),
        _route("two_factor", "POST", f"{prefix}/admin/2fa/verify", settings.rate_limit_two_factor),
        search,
        _route("admin_list", "GET", f"{prefix}/admin/registrations", settings.rate_limit_admin_read),
        _route("admin_contact", "GET", f"{prefix}/admin/contact", settings.rate_limit_admin_read),
        _route("export", "POST", f"{prefix}/admin/export/csv", settings.rate_limit_export),
        _route("registration", "POST", f"{prefix}/registrations", settings.rate_limit_registration),
        _route("contact", "POST", f"{prefix}/contact", settings.rate_limit_contact),
    ]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Enforce per-route, per-client limits.

    The limiter is looked up on app.state at request time, so the store is
    created (and closed) by the application lifespan.

    Example:
        app.add_middleware(RateLimitMiddleware, limits=build_route_limits(settings))

    Note:
        Store errors (e.g. Redis unreachable) propagate and fail the request
        rather than letting it through unlimited.
    """

    def __init__(
        self,
        app,
        limits: List[RouteRateLimit],
        trusted_proxy_count: int = 0,
    ):
        super().__init__(app)
        self.limits = limits
        self.trusted_proxy_count = trusted_proxy_count

        logger.info(
            "Rate limiting initialized",
            extra={"routes": [limit.name for limit in limits]}
        )

    def _match(self, method: str, path: str) -> Optional[RouteRateLimit]:
        for limit in self.limits:
            if limit.matches(method, path):
                return limit
        return None

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        limit = self._match(request.method, request.url.path)
        if limit is None:
            return await call_next(request)

        client_ip = getattr(request.state, "client_ip", None) or resolve_client_ip(
            request, self.trusted_proxy_count
        )
        limiter: RateLimiter = request.app.state.rate_limiter

        allowed = await limiter.allow(
            limit.name,
            client_ip,
            max_requests=limit.rule.max_requests,
            window_seconds=limit.rule.window_seconds,
        )
        if allowed:
            return await call_next(request)

        audit_event(
            "rate_limit.exceeded",
            outcome="denied",
            actor=None,
            client_ip=client_ip,
            request_id=getattr(request.state, "request_id", None),
            level="warning",
            limit_name=limit.name,
        )

        error = RateLimitExceededError()
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.message},
        )
