"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Readiness probe.

    Ready means Cassandra is connected and the services are built. Redis
    is reported but optional.
    """
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    services = getattr(request.app.state, "story_service", None) is not None
    ready = database and services

    body: dict[str, Any] = {
        "status": "ready" if ready else "not_ready",
        "environment": settings.environment,
        "checks": {
            "cassandra": database,
            "services": services,
            "redis": get_redis() is not None,
        },
    }
    return ORJSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
