"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.infrastructure.config import settings

router = APIRouter()

logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="catalog-api",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check() -> JSONResponse:
    """Check if service is ready to accept requests.

    Pings the database when the catalog is database-backed.

    Returns:
        Readiness status, 503 when the database is unreachable.
    """
    if settings.catalog_store != "database":
        return JSONResponse({"status": "ready", "store": settings.catalog_store})

    from app.infrastructure.database import check_connection

    try:
        await check_connection()
    except Exception as e:
        logger.warning("Database readiness check failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "store": "database"},
        )

    return JSONResponse({"status": "ready", "store": "database"})
