"""
Health probe functions for dependency checks.

This module provides reusable probe functions for:
- Database connectivity (SQLite/PostgreSQL)
- Rate limit store availability (Redis when configured)

Each probe function:
- Returns bool (True = healthy, False = unhealthy)
- Handles exceptions gracefully
- Includes appropriate timeouts
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quizfest.services.rate_limiter import RateLimiter


async def check_database(
    session_maker: async_sessionmaker[AsyncSession],
    timeout_seconds: float = 2.0,
) -> bool:
    """
    Check database connectivity.

    Executes a simple SELECT 1 query to verify the database is reachable
    and responding.

    Args:
        session_maker: Session factory of the running application
        timeout_seconds: Maximum time to wait for response (default: 2.0)

    Returns:
        True if database is reachable and healthy, False otherwise
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            async with session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                return True

    except asyncio.TimeoutError:
        return False
    except Exception:
        # Any other error (connection failed, query error, etc.)
        return False


async def check_rate_limit_store(limiter: RateLimiter, timeout_seconds: float = 2.0) -> bool:
    """
    Check that the rate limit store answers.

    Always healthy for the in-memory store; pings Redis otherwise.
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            return await limiter.store.ping()

    except asyncio.TimeoutError:
        return False
    except Exception:
        return False
