"""
Response models for the liveness and readiness endpoints.

Readiness reports exactly the two dependencies the service cannot work
without: the registration database and the rate limit store. Failure
messages are fixed strings so connection details never leave the process.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class LivenessResponse(BaseModel):
    """
    Returned by /health while the process is serving requests.

    Attributes:
        status: Always "ok"
        version: Deployed quizfest package version
        timestamp: Current UTC timestamp
    """
    status: Literal["ok"] = "ok"
    version: str = Field(description="Deployed application version")
    timestamp: datetime = Field(description="Current UTC timestamp")


class DependencyStatus(BaseModel):
    """Outcome of one readiness check."""
    healthy: bool
    latency_ms: float = Field(ge=0, description="Time the check took")
    error: Optional[str] = Field(
        default=None,
        description="Generic failure reason; unset when healthy"
    )


class ReadinessChecks(BaseModel):
    db: DependencyStatus = Field(description="Registration database")
    rate_limit_store: DependencyStatus = Field(
        description="Rate limit counters (memory or Redis)"
    )

    @property
    def all_healthy(self) -> bool:
        return self.db.healthy and self.rate_limit_store.healthy


class ReadinessResponse(BaseModel):
    status: Literal["ready", "not_ready"]
    checks: ReadinessChecks
    timestamp: datetime = Field(description="Current UTC timestamp")
