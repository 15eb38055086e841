"""
Logging middleware for request/response tracking.

This middleware logs every HTTP request with:
- Method and matched route template
- Response status code
- Request latency in milliseconds
- Request correlation ID and client address
- Exception details (if request failed)

The route template (``/api/admin/registrations/search/{term}``) is logged
instead of the raw path, so search terms and other path parameters never
reach the logs. Query strings are not logged for the same reason.

Must be registered inside RequestContextMiddleware to access request_id.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from quizfest.core.logging_config import get_logger, log_with_context


logger = get_logger(__name__)


def route_template(request: Request, api_prefix: str = "") -> str:
    """
    Path template of the route that handled the request.

    Depending on the FastAPI release, the matched route's path is either
    the full template or relative to the router it was included with. The
    API prefix is restored in the second case, so both report
    ``/api/admin/registrations/search/{term}``.

    Returns "unmatched" when no route matched (404s, rejected requests),
    rather than echoing an arbitrary client-supplied path.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if not template:
        return "unmatched"

    path_regex = getattr(route, "path_regex", None)
    path = request.scope.get("path", "")
    if (
        api_prefix
        and path_regex is not None
        and not path_regex.match(path)
        and path.startswith(api_prefix + "/")
    ):
        return api_prefix + template
    return template


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Example:
        app.add_middleware(LoggingMiddleware, api_prefix="/api")
        app.add_middleware(RequestContextMiddleware)  # added last, runs first

    Log output (JSON):
        {
            "timestamp": "2025-11-24T10:30:00.123456+00:00",
            "level": "INFO",
            "message": "Request completed",
            "method": "GET",
            "route": "/api/admin/registrations/search/{term}",
            "status_code": 200,
            "latency_ms": 12.5,
            "request_id": "abc-123"
        }
    """

    def __init__(self, app, api_prefix: str = ""):
        super().__init__(app)
        self.api_prefix = api_prefix

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        request_id = getattr(request.state, "request_id", None)
        client_ip = getattr(request.state, "client_ip", None)

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                extra={
                    "method": method,
                    "route": route_template(request, self.api_prefix),
                    "latency_ms": round(latency_ms, 2),
                    "request_id": request_id,
                    "client_ip": client_ip,
                    "exception_type": type(exc).__name__,
                },
                exc_info=True
            )
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        log_with_context(
            logger,
            "info",
            "Request completed",
            request_id=request_id,
            client_ip=client_ip,
            route=route_template(request, self.api_prefix),
            method=method,
            status_code=response.status_code,
            latency_ms=round(latency_ms, 2),
        )
        return response
