"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from salary_engine.api.dependencies import DbSession, JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str
    workers: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, queue: JobQueue) -> HealthResponse:
    """Check API, database and job worker health."""
    db_status = "unhealthy"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("Database health probe failed", exc_info=True)

    workers = "running" if queue.running else "stopped"
    healthy = db_status == "healthy" and queue.running
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        workers=workers,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(queue: JobQueue, response: Response) -> dict[str, str]:
    """Ready once the job workers are accepting work."""
    if not queue.running:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "starting"}
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
