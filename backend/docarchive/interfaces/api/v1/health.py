"""Service health endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ....infrastructure.config.settings import get_settings
from ....infrastructure.logging import get_logger
from ..dependencies import DbSession

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    summary="API Health Check",
    description="Health check endpoint for monitoring and container orchestration. Includes a database ping.",
    responses={
        200: {"description": "API and database are healthy"},
        503: {"description": "Database unreachable"},
    },
)
async def health_check(db: DbSession) -> JSONResponse:
    """Health check endpoint for Docker health checks."""
    settings = get_settings()
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        database = "unhealthy"

    healthy = database == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": healthy,
            "data": {
                "status": "healthy" if healthy else "degraded",
                "service": settings.APP_NAME,
                "version": settings.VERSION,
                "environment": settings.ENVIRONMENT.value,
                "database": database,
            },
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
