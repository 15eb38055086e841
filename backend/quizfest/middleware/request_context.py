"""
Request context middleware: correlation ID and client address.

Every request gets:
- request.state.request_id: from the X-Request-ID header, or a new UUID
- request.state.client_ip: the resolved client address used for rate
  limiting and audit records

The request ID is echoed back in the X-Request-ID response header.
"""

import re
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Client-supplied IDs end up in logs; accept only short opaque tokens
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def resolve_client_ip(request: Request, trusted_proxy_count: int = 0) -> str:
    """
    Determine the client address for a request.

    Each reverse proxy appends the address it received the request from to
    X-Forwarded-For, so only the rightmost ``trusted_proxy_count`` entries
    were written by infrastructure we control. Entries further left are
    client-supplied and never used. With no trusted proxies, or a header
    shorter than the proxy chain, the socket peer is the client.

    Args:
        request: Incoming request
        trusted_proxy_count: Number of reverse proxies in front of the app

    Returns:
        Client IP address, or "unknown"
    """
    if trusted_proxy_count > 0:
        forwarded = request.headers.get("X-Forwarded-For", "")
        entries = [entry.strip() for entry in forwarded.split(",") if entry.strip()]
        if len(entries) >= trusted_proxy_count:
            return entries[-trusted_proxy_count]

    if request.client:
        return request.client.host
    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach request ID and client IP to request.state.

    Must be the outermost application middleware so logging, rate
    limiting and route handlers all see the same values.

    Example:
        app.add_middleware(RequestContextMiddleware, trusted_proxy_count=1)
    """

    def __init__(self, app, trusted_proxy_count: int = 0):
        super().__init__(app)
        self.trusted_proxy_count = trusted_proxy_count

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get("X-Request-ID")
        if not request_id or not _REQUEST_ID_PATTERN.match(request_id):
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.client_ip = resolve_client_ip(request, self.trusted_proxy_count)

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response
