"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app serve traffic?
- Detailed health check: Status of all dependencies
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storage_gateway.config import settings
from storage_gateway.core.database import db_manager
from storage_gateway.core.exceptions import StoreUnavailableError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        async for db in db_manager.get_session():
            await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, RuntimeError, OSError) as e:
        logger.warning("health_database_unhealthy", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


async def _check_object_store(request: Request) -> dict[str, Any]:
    store = request.app.state.object_store
    start = time.perf_counter()
    try:
        await store.ping()
    except StoreUnavailableError as e:
        logger.warning("health_object_store_unhealthy", error=e.message)
        return {"status": "unhealthy", "error": e.message}
    return {
        "status": "healthy",
        "bucket": store.bucket,
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


@router.get("/health/live")
async def liveness() -> dict:
    """
    Liveness probe.

    Returns:
        200: Application is running
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request) -> JSONResponse:
    """
    Readiness probe.

    Checks:
    - Database connectivity
    - Object store bucket reachability

    Returns:
        200: Ready to serve traffic
        503: Not ready (dependencies unavailable)
    """
    checks = {
        "database": await _check_database(),
        "object_store": await _check_object_store(request),
    }
    is_ready = all(check["status"] == "healthy" for check in checks.values())

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {name: {"status": check["status"]} for name, check in checks.items()},
        }
    )


@router.get("/health")
async def health(request: Request) -> dict:
    """Detailed health check with dependency status and timings."""
    checks = {
        "database": await _check_database(),
        "object_store": await _check_object_store(request),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
