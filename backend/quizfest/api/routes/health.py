"""
Health check endpoints for monitoring and readiness probes.

- Liveness probe: /health (basic "is the server running" check)
- Readiness probe: /health/ready (database and rate limit store)
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Optional

from fastapi import APIRouter, Request, Response, status

from quizfest import __version__
from quizfest.core.probes import check_database, check_rate_limit_store
from quizfest.schemas.health import (
    DependencyStatus,
    LivenessResponse,
    ReadinessChecks,
    ReadinessResponse,
)

router = APIRouter()


@router.get(
    "/health",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check() -> LivenessResponse:
    """
    Basic liveness probe.

    Always returns 200 while the application is running.
    """
    return LivenessResponse(version=__version__, timestamp=datetime.now(timezone.utc))


async def _timed(check: Awaitable[bool], failure_message: str) -> DependencyStatus:
    start = time.perf_counter()
    healthy = await check
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    error: Optional[str] = None if healthy else failure_message
    return DependencyStatus(healthy=healthy, latency_ms=latency_ms, error=error)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """
    Readiness probe with dependency checks.

    Runs both checks concurrently. Returns 200 if all pass, 503 otherwise.

    Example response (unhealthy):
        {
            "status": "not_ready",
            "checks": {
                "db": {"healthy": true, "latency_ms": 1.2, "error": null},
                "rate_limit_store": {"healthy": false, "latency_ms": 2000.0,
                                     "error": "Rate limit store unreachable"}
            },
            "timestamp": "2025-11-24T10:30:00.123456+00:00"
        }
    """
    db, rate_limit_store = await asyncio.gather(
        _timed(
            check_database(request.app.state.session_maker),
            "Database connection failed or timed out",
        ),
        _timed(
            check_rate_limit_store(request.app.state.rate_limiter),
            "Rate limit store unreachable",
        ),
    )
    checks = ReadinessChecks(db=db, rate_limit_store=rate_limit_store)

    if not checks.all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status="ready" if checks.all_healthy else "not_ready",
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
