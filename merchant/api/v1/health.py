"""Health check endpoints."""

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Response, status
from sqlalchemy import text

from merchant.core.config import settings
from merchant.core.deps import DBSession
from merchant.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database(db: DBSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return f"unhealthy: {e}"
    return "healthy"


async def _check_broker() -> str:
    """Ping the Redis instance Celery uses as its broker."""
    client = aioredis.from_url(str(settings.redis_url), socket_connect_timeout=2)
    try:
        await client.ping()
    except Exception as e:
        logger.warning("Broker health check failed: %s", e)
        return f"unhealthy: {e}"
    finally:
        await client.aclose()
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DBSession) -> HealthResponse:
    """
    Health check endpoint.

    Reports database and broker connectivity. A broker outage only delays
    customer emails, but it is still reported as unhealthy.
    """
    checks = {
        "database": await _check_database(db),
        "broker": await _check_broker(),
    }
    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "unhealthy"
    return HealthResponse(
        status=overall,
        version=settings.version,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession, response: Response) -> dict[str, str]:
    """Readiness probe: the database answers queries."""
    if await _check_database(db) != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}
