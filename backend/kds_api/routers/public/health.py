"""
Health check endpoints.
Basic liveness plus a detailed check of the database and Redis.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from kds_shared.config.settings import settings
from kds_shared.config.logging import get_logger
from kds_shared.infrastructure.db import get_db_context
from kds_shared.infrastructure.events import check_redis_health, get_event_circuit_breaker

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """Service status without checking dependencies."""
    return {
        "status": "healthy",
        "service": "kds-api",
        "environment": settings.environment,
    }


def check_database_health() -> dict:
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health/detailed")
async def detailed_health_check():
    """
    Verifies connectivity to the database and Redis.
    Returns 503 if any dependency is down.
    """
    dependencies = {
        "database": check_database_health(),
        "redis": await check_redis_health(),
    }
    all_healthy = all(d["status"] == "healthy" for d in dependencies.values())
    checks = {
        "service": "kds-api",
        "environment": settings.environment,
        "status": "healthy" if all_healthy else "degraded",
        "dependencies": dependencies,
        "event_circuit_breaker": get_event_circuit_breaker().get_stats(),
    }

    if not all_healthy:
        return JSONResponse(content=checks, status_code=503)
    return checks
