"""Health check router."""

import logging
from datetime import datetime, UTC

from fastapi import APIRouter, Request

from ..config import settings
from ..models import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Reports "degraded" when the ingestion thread is not running.
    """
    worker = getattr(request.app.state, "worker", None)
    loop = worker.ingestion_loop if worker is not None else None

    status = "healthy" if worker is not None and worker.is_running else "degraded"

    return HealthResponse(
        status=status,
        service=settings.service_name,
        timestamp=datetime.now(UTC),
        version=settings.version,
        ingestion=loop.stats.model_copy() if loop is not None else None,
    )


@router.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": settings.version,
        "status": "running",
    }
