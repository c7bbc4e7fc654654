"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from deskguard.config import settings
from deskguard.database import engine
from deskguard.utils.cache import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight liveness check (no DB/Redis round trip)."""
    return {
        "status": "ok",
        "service": "DeskGuard",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check including the database and Redis.

    Redis is reported but does not fail readiness when the override cache
    is disabled.
    """
    checks = {
        "service": "ok",
        "database": "unknown",
        "redis": "disabled",
    }
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    if settings.permission_cache_enabled:
        try:
            redis_client = await get_redis()
            await redis_client.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {str(e)[:100]}"
            overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "DeskGuard",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
