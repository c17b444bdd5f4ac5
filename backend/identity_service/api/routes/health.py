from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from identity_service.api.deps import get_db
from identity_service.core.logging import get_logger
from identity_service.db.errors import STORE_ERRORS

router = APIRouter()

logger = get_logger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": request.app.version,
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check - verifies the database is reachable."""
    checks = {"database": False}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except STORE_ERRORS:
        logger.error("Readiness database probe failed", exc_info=True)

    return {
        "status": "ready" if checks["database"] else "degraded",
        "checks": checks,
    }


@router.get("/health/metrics")
async def get_metrics(request: Request):
    """Get current service metrics."""
    return await request.app.state.metrics.get_all()
