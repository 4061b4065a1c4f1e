"""
Health check endpoints for the REST API.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import get_redis_pool
from shared.utils.health import HealthStatus, aggregate_health_checks, health_check_with_timeout


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """Liveness probe; does not touch dependencies."""
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database_health() -> dict:
    with SessionLocal() as db:
        db.execute(text("SELECT 1"))
    return {"dialect": db.bind.dialect.name}


@health_check_with_timeout(timeout=3.0, component="redis")
async def check_redis_health() -> None:
    redis_client = await get_redis_pool()
    await redis_client.ping()


@router.get("/health/detailed")
async def detailed_health_check():
    """
    Readiness probe covering the database and Redis.

    Returns 503 when any dependency is down.
    """
    health = await aggregate_health_checks([
        check_database_health(),
        check_redis_health(),
    ])
    body = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": health["status"],
        "dependencies": health["components"],
    }
    if health["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=body, status_code=503)
    return body
