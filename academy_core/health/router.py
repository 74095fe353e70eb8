"""Liveness, readiness and info endpoints (unauthenticated)."""

from fastapi import APIRouter, Request

from academy_core.config import get_settings
from academy_core.core.database import AsyncCassandraConnection
from academy_core.core.redis import redis_available


router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Ready once the service graph is installed.

    Redis is reported but never gates readiness: the progress throttle
    falls back to per-process state without it.
    """
    wired = getattr(request.app.state, "progress_service", None) is not None
    return {
        "status": "ready" if wired else "starting",
        "environment": get_settings().environment,
        "cassandra": AsyncCassandraConnection.is_connected(),
        "redis": await redis_available(),
    }
